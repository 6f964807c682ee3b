# -*- coding: utf-8 -*-
"""
Order Finalizer

Turns a verified "payment succeeded" webhook event into a durable order:

1. decode and validate the payment intent metadata
2. skip payments that already have an order (processors redeliver)
3. recompute subtotal, discount and total from the purchaser's cart and the
   coupon, and compare against the captured amount
4. write the order, its items, the coupon redemption and the cart clear in
   one transaction

The unique constraint on ``orders.payment_id`` is the final guard against two
deliveries of the same payment racing past step 2.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from coursecart.infra.db import db
from coursecart.infra.log import get_logger
from coursecart.models import CartItem, Coupon, Course, Order, OrderItem
from coursecart.models.base import utcnow
from coursecart.schemas.payment_metadata import PaymentMetadata
from coursecart.schemas.stripe_events import (
    PAYMENT_INTENT_SUCCEEDED, PaymentIntentPayload, WebhookEvent,
)
from coursecart.services import pricing
from coursecart.services.errors import (
    AmountMismatchError, EmptyCartError, MetadataError, PersistenceError,
)
from coursecart.services.order_number import generate_order_number
from coursecart.services.structured_logging import log_idempotent_replay

logger = get_logger('coursecart.fulfillment')

CREATED = 'created'
DUPLICATE = 'duplicate'
IGNORED = 'ignored'


@dataclass(frozen=True)
class FinalizeResult:
    status: str
    order_number: Optional[str] = None
    payment_id: Optional[str] = None


@dataclass(frozen=True)
class FulfillmentSettings:
    currency: str = 'AUD'
    payment_method: str = 'card'
    tolerance: Decimal = pricing.DEFAULT_TOLERANCE
    order_number_attempts: int = 3
    honor_checkout_snapshot: bool = False

    @classmethod
    def from_config(cls, config) -> 'FulfillmentSettings':
        return cls(
            currency=config.get('STORE_CURRENCY', 'AUD'),
            payment_method=config.get('PAYMENT_METHOD_LABEL', 'card'),
            tolerance=Decimal(str(config.get('AMOUNT_TOLERANCE', pricing.DEFAULT_TOLERANCE))),
            order_number_attempts=max(1, int(config.get('ORDER_NUMBER_ATTEMPTS', 3))),
            honor_checkout_snapshot=bool(config.get('COUPON_HONOR_CHECKOUT_SNAPSHOT', False)),
        )


class OrderFinalizer:

    def __init__(self, session=None, settings: Optional[FulfillmentSettings] = None, order_number_factory=None):
        self.session = session or db.session
        self.settings = settings or FulfillmentSettings()
        self.order_number_factory = order_number_factory or generate_order_number

    def handle_event(self, event: WebhookEvent) -> FinalizeResult:
        """Route by event type; only successful payment intents do any work."""
        if event.type != PAYMENT_INTENT_SUCCEEDED:
            logger.info(f"Unhandled event type: {event.type}", stripe_event_id=event.id)
            return FinalizeResult(status=IGNORED)

        try:
            intent = PaymentIntentPayload.model_validate(event.data.object)
        except ValueError:
            raise MetadataError("Malformed payment intent payload")
        return self.finalize_payment(intent)

    def finalize_payment(self, intent: PaymentIntentPayload) -> FinalizeResult:
        metadata = PaymentMetadata.decode(intent.metadata)

        if self.find_order_for_payment(intent.id) is not None:
            log_idempotent_replay(intent.id)
            return FinalizeResult(status=DUPLICATE, payment_id=intent.id)

        lines = self.load_cart_lines(metadata.user_id, metadata.course_ids)
        if not lines:
            raise EmptyCartError("Cart is empty", details={'user_id': metadata.user_id})

        quote = self.reconcile(intent, metadata, lines)
        return self.materialize(intent.id, metadata, quote, lines)

    def find_order_for_payment(self, payment_id: str) -> Optional[Order]:
        return self.session.query(Order).filter_by(payment_id=payment_id).first()

    def load_cart_lines(self, user_id: str, course_ids: List[str]) -> List[Tuple[str, Decimal]]:
        """(course_id, charged price) for each of the purchaser's cart lines in ``course_ids``."""
        rows = (
            self.session.query(CartItem.course_id, Course.price, Course.discount_price)
            .join(Course, Course.id == CartItem.course_id)
            .filter(CartItem.user_id == user_id, CartItem.course_id.in_(course_ids))
            .order_by(CartItem.id)
            .all()
        )
        return [(row.course_id, pricing.line_price(row)) for row in rows]

    def reconcile(self, intent: PaymentIntentPayload, metadata: PaymentMetadata,
                  lines: List[Tuple[str, Decimal]]) -> pricing.PricingQuote:
        now = utcnow()
        coupon = Coupon.find_by_code(metadata.promo_code) if metadata.promo_code else None
        quote = pricing.quote_lines((price for _, price in lines), coupon, now)

        if (coupon is not None and quote.coupon is None
                and self.settings.honor_checkout_snapshot
                and metadata.discount_snapshot is not None):
            discount = pricing.to_money(metadata.discount_snapshot)
            logger.info(
                "Honoring checkout discount for lapsed coupon",
                coupon_code=coupon.code,
                discount=str(discount),
            )
            quote = pricing.PricingQuote(
                subtotal=quote.subtotal,
                discount=discount,
                total=quote.subtotal - discount,
                coupon=coupon,
            )
        elif metadata.promo_code and quote.coupon is None:
            logger.warning(
                "Promo code not applicable at fulfillment, no discount applied",
                promo_code=metadata.promo_code,
                payment_id=intent.id,
            )

        captured = pricing.to_major_units(intent.amount)
        if not pricing.amounts_match(quote.total, captured, self.settings.tolerance):
            raise AmountMismatchError(
                "Total amount mismatch",
                details={'expected': str(quote.total), 'captured': str(captured)},
            )
        return quote

    def materialize(self, payment_id: str, metadata: PaymentMetadata,
                    quote: pricing.PricingQuote, lines: List[Tuple[str, Decimal]]) -> FinalizeResult:
        """Write order, items, coupon usage and cart clear as one transaction."""
        coupon_id = quote.coupon.id if quote.coupon is not None else None

        for attempt in range(1, self.settings.order_number_attempts + 1):
            order_number = self.order_number_factory()
            try:
                self._write_order(order_number, payment_id, metadata, quote, coupon_id, lines)
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                if self.find_order_for_payment(payment_id) is not None:
                    log_idempotent_replay(payment_id, race=True)
                    return FinalizeResult(status=DUPLICATE, payment_id=payment_id)
                logger.warning(
                    "Order write conflicted, regenerating order number",
                    attempt=attempt,
                    order_number=order_number,
                    error=str(getattr(e, 'orig', e)),
                )
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                raise PersistenceError("Failed to process webhook") from e

            logger.info(
                "Order created",
                order_number=order_number,
                payment_id=payment_id,
                user_id=metadata.user_id,
                total=str(quote.total),
                discount=str(quote.discount),
                items=len(lines),
            )
            return FinalizeResult(status=CREATED, order_number=order_number, payment_id=payment_id)

        raise PersistenceError("Failed to process webhook", details={'reason': 'order number conflicts'})

    def _write_order(self, order_number: str, payment_id: str, metadata: PaymentMetadata,
                     quote: pricing.PricingQuote, coupon_id: Optional[str],
                     lines: List[Tuple[str, Decimal]]) -> Order:
        order = Order(
            order_number=order_number,
            user_id=metadata.user_id,
            status=Order.STATUS_COMPLETED,
            total=quote.total,
            discount=quote.discount,
            tax=pricing.ZERO,
            currency=self.settings.currency,
            payment_method=self.settings.payment_method,
            payment_id=payment_id,
            coupon_id=coupon_id,
            billing_address=self._billing_address(metadata),
        )
        order.items = [OrderItem(course_id=course_id, price=price) for course_id, price in lines]
        self.session.add(order)
        self.session.flush()

        if coupon_id is not None:
            self.session.query(Coupon).filter(Coupon.id == coupon_id).update(
                {Coupon.used_count: Coupon.used_count + 1}, synchronize_session=False
            )

        # Whole cart checks out, including lines outside this payment.
        self.session.query(CartItem).filter(CartItem.user_id == metadata.user_id).delete(
            synchronize_session=False
        )
        return order

    @staticmethod
    def _billing_address(metadata: PaymentMetadata) -> Dict[str, Any]:
        return dict(metadata.billing_details or {})
