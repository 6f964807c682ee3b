# -*- coding: utf-8 -*-
"""
Test cases for the checkout payment intent endpoint.
"""
import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe

from coursecart.database import db
from coursecart.models import Order

CHECKOUT_URL = "/api/stripe/checkout-session"


def _intent(payment_id="pi_checkout_1"):
    intent = MagicMock()
    intent.id = payment_id
    intent.client_secret = f"{payment_id}_secret_abc"
    return intent


class TestCheckoutSession:

    def test_creates_payment_intent_for_cart(self, client, auth_headers, make_course, add_to_cart):
        first, second = make_course("75.00"), make_course("75.00")
        add_to_cart("user_1", first, second)

        with patch("stripe.PaymentIntent.create") as mock_create:
            mock_create.return_value = _intent()
            response = client.post(CHECKOUT_URL, headers=auth_headers(),
                                   json={"total": "150.00", "billingDetails": {"name": "Ada"}})

        assert response.status_code == 200
        assert response.get_json() == {"clientSecret": "pi_checkout_1_secret_abc"}

        mock_create.assert_called_once()
        kwargs = mock_create.call_args[1]
        assert kwargs["amount"] == 15000
        assert kwargs["currency"] == "aud"
        assert kwargs["payment_method_types"] == ["card"]
        assert kwargs["api_key"] == "sk_test_dummy_key_for_testing"
        metadata = kwargs["metadata"]
        assert metadata["userId"] == "user_1"
        assert sorted(metadata["courseIds"].split(",")) == sorted([first.id, second.id])
        assert metadata["promoCode"] == ""
        assert json.loads(metadata["billingDetails"]) == {"name": "Ada"}
        assert "discountSnapshot" not in metadata

    def test_promo_code_discount_and_snapshot(self, client, auth_headers, make_course,
                                              add_to_cart, make_coupon):
        first, second = make_course("75.00"), make_course("75.00")
        add_to_cart("user_1", first, second)
        make_coupon(code="SAVE10", value="10")

        with patch("stripe.PaymentIntent.create") as mock_create:
            mock_create.return_value = _intent()
            response = client.post(CHECKOUT_URL, headers=auth_headers(),
                                   json={"total": 135, "promoCode": "save10"})

        assert response.status_code == 200
        kwargs = mock_create.call_args[1]
        assert kwargs["amount"] == 13500
        assert kwargs["metadata"]["promoCode"] == "save10"
        assert kwargs["metadata"]["discountSnapshot"] == "15.00"

    def test_total_mismatch_is_rejected(self, client, auth_headers, make_course, add_to_cart):
        add_to_cart("user_1", make_course("75.00"))

        with patch("stripe.PaymentIntent.create") as mock_create:
            response = client.post(CHECKOUT_URL, headers=auth_headers(), json={"total": "70.00"})

        assert response.status_code == 400
        body = response.get_json()
        assert body["code"] == "amount_mismatch"
        assert body["details"] == {"expected": "75.00", "submitted": "70.00"}
        mock_create.assert_not_called()

    def test_empty_cart_is_rejected(self, client, auth_headers):
        with patch("stripe.PaymentIntent.create") as mock_create:
            response = client.post(CHECKOUT_URL, headers=auth_headers(), json={"total": "10.00"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Cart is empty"
        mock_create.assert_not_called()

    @pytest.mark.parametrize("coupon_kwargs,code", [
        ({"ends_in": timedelta(days=-1)}, "invalid_promo_code"),
        ({"active": False}, "invalid_promo_code"),
        ({"max_uses": 1, "used_count": 1}, "promo_code_exhausted"),
        ({"min_order_value": Decimal("500.00")}, "promo_minimum_not_met"),
    ])
    def test_unusable_promo_codes(self, client, auth_headers, make_course, add_to_cart,
                                  make_coupon, coupon_kwargs, code):
        add_to_cart("user_1", make_course("100.00"))
        make_coupon(code="PROMO", value="10", **coupon_kwargs)

        with patch("stripe.PaymentIntent.create") as mock_create:
            response = client.post(CHECKOUT_URL, headers=auth_headers(),
                                   json={"total": "90.00", "promoCode": "PROMO"})

        assert response.status_code == 400
        assert response.get_json()["code"] == code
        mock_create.assert_not_called()

    def test_unknown_promo_code(self, client, auth_headers, make_course, add_to_cart):
        add_to_cart("user_1", make_course("100.00"))

        response = client.post(CHECKOUT_URL, headers=auth_headers(),
                               json={"total": "100.00", "promoCode": "NOSUCHCODE"})

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_promo_code"

    @pytest.mark.parametrize("body", [{}, {"total": "abc"}, {"total": 0}, {"total": -5}])
    def test_invalid_request_body(self, client, auth_headers, body):
        response = client.post(CHECKOUT_URL, headers=auth_headers(), json=body)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid checkout request"

    def test_requires_token(self, client):
        response = client.post(CHECKOUT_URL, json={"total": "10.00"})
        assert response.status_code == 401

    def test_stripe_error_returns_502(self, client, auth_headers, make_course, add_to_cart):
        add_to_cart("user_1", make_course("20.00"))

        with patch("stripe.PaymentIntent.create") as mock_create:
            mock_create.side_effect = stripe.APIConnectionError("Network unreachable")
            response = client.post(CHECKOUT_URL, headers=auth_headers(), json={"total": "20.00"})

        assert response.status_code == 502
        assert "Stripe error" in response.get_json()["error"]


class TestCheckoutToFulfillment:

    def test_checkout_metadata_fulfills_through_webhook(self, client, auth_headers, make_course,
                                                        add_to_cart, make_coupon, post_webhook,
                                                        event_factory):
        first, second = make_course("75.00"), make_course("75.00")
        add_to_cart("user_1", first, second)
        make_coupon(code="SAVE10", value="10")

        with patch("stripe.PaymentIntent.create") as mock_create:
            mock_create.return_value = _intent("pi_end_to_end")
            response = client.post(CHECKOUT_URL, headers=auth_headers(),
                                   json={"total": "135.00", "promoCode": "SAVE10",
                                         "billingDetails": {"country": "AU"}})
        assert response.status_code == 200
        kwargs = mock_create.call_args[1]

        webhook = post_webhook(event_factory(
            payment_id="pi_end_to_end", amount=kwargs["amount"], metadata=kwargs["metadata"]))

        assert webhook.status_code == 200
        db.session.expire_all()
        order = Order.query.filter_by(payment_id="pi_end_to_end").one()
        assert order.total == Decimal("135.00")
        assert order.discount == Decimal("15.00")
        assert order.billing_address == {"country": "AU"}

        lookup = client.get(f"/api/orders/{order.order_number.lower()}", headers=auth_headers())
        assert lookup.status_code == 200
        assert lookup.get_json()["coupon"] == {"code": "SAVE10"}
