# -*- coding: utf-8 -*-
"""
Checkout Service

Creates the payment intent the webhook later fulfills. The total is
recomputed server-side and the payment intent metadata is written through
``PaymentMetadata`` so the webhook can decode it.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from coursecart.infra.db import db
from coursecart.infra.log import get_logger
from coursecart.models import CartItem, Coupon
from coursecart.models.base import utcnow
from coursecart.schemas.checkout import CheckoutRequest
from coursecart.schemas.payment_metadata import PaymentMetadata
from coursecart.services import pricing
from coursecart.services.errors import CheckoutError
from coursecart.services.stripe_gateway import StripeGateway

logger = get_logger('coursecart.checkout')


@dataclass(frozen=True)
class CheckoutSession:
    payment_intent_id: str
    client_secret: str
    amount_minor: int
    quote: pricing.PricingQuote


class CheckoutService:

    def __init__(self, gateway: StripeGateway, currency: str = 'AUD',
                 tolerance: Decimal = pricing.DEFAULT_TOLERANCE, session=None):
        self.gateway = gateway
        self.currency = currency
        self.tolerance = tolerance
        self.session = session or db.session

    def create_session(self, user_id: str, req: CheckoutRequest) -> CheckoutSession:
        items = (
            self.session.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.id)
            .all()
        )
        if not items:
            raise CheckoutError("Cart is empty", code='empty_cart')

        now = utcnow()
        prices = [pricing.line_price(item.course) for item in items]
        subtotal = pricing.to_money(sum(prices, pricing.ZERO))

        coupon: Optional[Coupon] = None
        if req.promo_code:
            coupon = pricing.validate_coupon_for_checkout(Coupon.find_by_code(req.promo_code), subtotal, now)
        quote = pricing.quote_lines(prices, coupon, now)

        if not pricing.amounts_match(quote.total, req.total, self.tolerance):
            raise CheckoutError(
                "Total amount mismatch",
                code='amount_mismatch',
                details={'expected': str(quote.total), 'submitted': str(req.total)},
            )

        amount_minor = pricing.to_minor_units(quote.total)
        if amount_minor <= 0:
            raise CheckoutError("Total amount must be greater than zero", code='invalid_total')

        metadata = PaymentMetadata(
            user_id=user_id,
            course_ids=[item.course_id for item in items],
            promo_code=req.promo_code or None,
            billing_details=req.billing_details,
            discount_snapshot=quote.discount if quote.coupon is not None else None,
        )
        intent = self.gateway.create_payment_intent(amount_minor, self.currency, metadata.encode())

        logger.info(
            "Payment intent created",
            payment_intent_id=intent.id,
            user_id=user_id,
            amount_minor=amount_minor,
            courses=len(items),
        )
        return CheckoutSession(
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount_minor=amount_minor,
            quote=quote,
        )
