# -*- coding: utf-8 -*-
"""
Cart pricing and coupon rules.

All amounts are Decimal in major currency units (dollars), quantized to
cents. The processor reports captured amounts in minor units (cents); use
``to_major_units`` before comparing.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from coursecart.models.coupon import Coupon
from coursecart.services.errors import CheckoutError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')
DEFAULT_TOLERANCE = Decimal('0.01')


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_major_units(amount_minor: int) -> Decimal:
    return to_money(Decimal(int(amount_minor)) / 100)


def to_minor_units(amount: Decimal) -> int:
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def line_price(course) -> Decimal:
    """Price charged for a course: its discounted price if set, else its base price."""
    if course.discount_price:
        return to_money(course.discount_price)
    return to_money(course.price)


def coupon_is_applicable(coupon: Optional[Coupon], now: datetime) -> bool:
    return bool(coupon and coupon.is_active and coupon.end_date >= now)


def compute_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == Coupon.PERCENTAGE:
        discount = subtotal * value / 100
        cap = coupon.max_discount_amount
        if cap and discount > Decimal(cap):
            discount = Decimal(cap)
        return to_money(discount)
    return to_money(value)


@dataclass(frozen=True)
class PricingQuote:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon: Optional[Coupon] = None


def quote_lines(prices: Iterable[Decimal], coupon: Optional[Coupon], now: datetime) -> PricingQuote:
    """
    Price a set of line prices with an optional coupon.

    A coupon that is missing, inactive or expired contributes no discount and
    is not reported back.
    """
    subtotal = to_money(sum((to_money(p) for p in prices), ZERO))
    if not coupon_is_applicable(coupon, now):
        return PricingQuote(subtotal=subtotal, discount=ZERO, total=subtotal)
    discount = compute_discount(coupon, subtotal)
    return PricingQuote(subtotal=subtotal, discount=discount, total=subtotal - discount, coupon=coupon)


def amounts_match(expected: Decimal, captured: Decimal, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
    return abs(Decimal(expected) - Decimal(captured)) <= tolerance


def validate_coupon_for_checkout(coupon: Optional[Coupon], subtotal: Decimal, now: datetime) -> Coupon:
    """Checkout-time coupon rules; stricter than the webhook's re-check."""
    if not coupon_is_applicable(coupon, now) or (coupon.start_date and coupon.start_date > now):
        raise CheckoutError("Invalid or expired promo code", code='invalid_promo_code')
    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        raise CheckoutError("Promo code usage limit reached", code='promo_code_exhausted')
    if coupon.min_order_value and subtotal < Decimal(coupon.min_order_value):
        raise CheckoutError("Order value below minimum for this promo", code='promo_minimum_not_met')
    return coupon
