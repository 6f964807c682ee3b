# -*- coding: utf-8 -*-
"""
Test suite for cart pricing and coupon rules.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from coursecart.models import Coupon
from coursecart.services import pricing
from coursecart.services.errors import CheckoutError

NOW = datetime(2026, 3, 1, 12, 0, 0)


def coupon(discount_type=Coupon.PERCENTAGE, value="10", cap=None, active=True,
           end_date=NOW + timedelta(days=1), **kwargs):
    kwargs.setdefault("used_count", 0)
    return Coupon(
        code=kwargs.pop("code", "SAVE10"),
        discount_type=discount_type,
        discount_value=Decimal(value),
        max_discount_amount=Decimal(cap) if cap is not None else None,
        is_active=active,
        end_date=end_date,
        **kwargs
    )


class TestMoney:

    def test_minor_to_major(self):
        assert pricing.to_major_units(13500) == Decimal("135.00")
        assert str(pricing.to_major_units(1)) == "0.01"

    def test_major_to_minor_rounds_half_up(self):
        assert pricing.to_minor_units(Decimal("135.00")) == 13500
        assert pricing.to_minor_units(Decimal("19.995")) == 2000

    def test_to_money_quantizes(self):
        assert str(pricing.to_money("7.5")) == "7.50"
        assert str(pricing.to_money(Decimal("1.005"))) == "1.01"


class TestLinePrice:

    def test_discount_price_wins_when_set(self):
        course = SimpleNamespace(price=Decimal("100.00"), discount_price=Decimal("49.50"))
        assert pricing.line_price(course) == Decimal("49.50")

    def test_base_price_without_discount(self):
        course = SimpleNamespace(price=Decimal("100.00"), discount_price=None)
        assert pricing.line_price(course) == Decimal("100.00")

    def test_zero_discount_price_falls_back_to_base(self):
        course = SimpleNamespace(price=Decimal("100.00"), discount_price=Decimal("0"))
        assert pricing.line_price(course) == Decimal("100.00")


class TestCouponApplicability:

    def test_active_unexpired(self):
        assert pricing.coupon_is_applicable(coupon(), NOW)

    def test_missing_coupon(self):
        assert not pricing.coupon_is_applicable(None, NOW)

    def test_inactive(self):
        assert not pricing.coupon_is_applicable(coupon(active=False), NOW)

    def test_expired(self):
        assert not pricing.coupon_is_applicable(coupon(end_date=NOW - timedelta(seconds=1)), NOW)

    def test_end_date_is_inclusive(self):
        assert pricing.coupon_is_applicable(coupon(end_date=NOW), NOW)


class TestComputeDiscount:

    def test_percentage(self):
        assert pricing.compute_discount(coupon(value="10"), Decimal("150.00")) == Decimal("15.00")

    def test_percentage_capped(self):
        c = coupon(value="50", cap="20")
        assert pricing.compute_discount(c, Decimal("100.00")) == Decimal("20.00")

    def test_percentage_under_cap(self):
        c = coupon(value="10", cap="20")
        assert pricing.compute_discount(c, Decimal("100.00")) == Decimal("10.00")

    def test_percentage_rounds_to_cents(self):
        c = coupon(value="15")
        assert pricing.compute_discount(c, Decimal("19.99")) == Decimal("3.00")

    def test_fixed(self):
        c = coupon(discount_type=Coupon.FIXED, value="10")
        assert pricing.compute_discount(c, Decimal("60.00")) == Decimal("10.00")

    def test_fixed_is_not_clamped_to_subtotal(self):
        c = coupon(discount_type=Coupon.FIXED, value="80")
        assert pricing.compute_discount(c, Decimal("60.00")) == Decimal("80.00")


class TestQuoteLines:

    def test_no_coupon(self):
        quote = pricing.quote_lines([Decimal("75.00"), Decimal("75.00")], None, NOW)
        assert quote == pricing.PricingQuote(
            subtotal=Decimal("150.00"), discount=Decimal("0.00"), total=Decimal("150.00"))

    def test_with_coupon(self):
        c = coupon(value="10")
        quote = pricing.quote_lines([Decimal("75.00"), Decimal("75.00")], c, NOW)
        assert quote.subtotal == Decimal("150.00")
        assert quote.discount == Decimal("15.00")
        assert quote.total == Decimal("135.00")
        assert quote.coupon is c

    def test_lapsed_coupon_is_dropped(self):
        quote = pricing.quote_lines([Decimal("75.00")], coupon(active=False), NOW)
        assert quote.discount == Decimal("0.00")
        assert quote.coupon is None


class TestAmountsMatch:

    @pytest.mark.parametrize("captured,expected", [
        ("135.00", True),
        ("135.01", True),
        ("134.99", True),
        ("135.02", False),
        ("140.00", False),
    ])
    def test_tolerance(self, captured, expected):
        assert pricing.amounts_match(Decimal("135.00"), Decimal(captured)) is expected

    def test_custom_tolerance(self):
        assert pricing.amounts_match(Decimal("10.00"), Decimal("10.50"), Decimal("0.50"))


class TestCheckoutCouponRules:

    def test_valid_coupon_passes(self):
        c = coupon()
        assert pricing.validate_coupon_for_checkout(c, Decimal("50.00"), NOW) is c

    def test_unknown_code(self):
        with pytest.raises(CheckoutError) as exc:
            pricing.validate_coupon_for_checkout(None, Decimal("50.00"), NOW)
        assert exc.value.code == "invalid_promo_code"

    def test_not_started(self):
        with pytest.raises(CheckoutError) as exc:
            pricing.validate_coupon_for_checkout(
                coupon(start_date=NOW + timedelta(hours=1)), Decimal("50.00"), NOW)
        assert exc.value.code == "invalid_promo_code"

    def test_exhausted(self):
        with pytest.raises(CheckoutError) as exc:
            pricing.validate_coupon_for_checkout(
                coupon(max_uses=5, used_count=5), Decimal("50.00"), NOW)
        assert exc.value.code == "promo_code_exhausted"

    def test_minimum_order_value(self):
        with pytest.raises(CheckoutError) as exc:
            pricing.validate_coupon_for_checkout(
                coupon(min_order_value=Decimal("100.00")), Decimal("50.00"), NOW)
        assert exc.value.code == "promo_minimum_not_met"
        assert exc.value.status_code == 400
