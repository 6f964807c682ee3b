# -*- coding: utf-8 -*-
"""
Stripe gateway.

Thin wrapper over the Stripe SDK that the application factory constructs once
and stores on ``app.extensions['stripe_gateway']``. Routes fetch it with
``get_stripe_gateway()`` so tests can hand the factory a fake.
"""
import json
from typing import Any, Dict, Optional

import stripe
from flask import current_app
from pydantic import ValidationError

from coursecart.schemas.stripe_events import WebhookEvent
from coursecart.services.errors import SignatureError

DEFAULT_TOLERANCE_SECONDS = 300


class StripeGateway:
    """Verifies webhook deliveries and creates payment intents."""

    def __init__(self, api_key: Optional[str] = None, tolerance: int = DEFAULT_TOLERANCE_SECONDS):
        self.api_key = (api_key or '').strip() or None
        self.tolerance = tolerance

    def construct_event(self, payload: bytes, sig_header: Optional[str], secret: str) -> WebhookEvent:
        """
        Verify ``sig_header`` over the raw request body and parse it.

        The signature covers the exact bytes Stripe sent, so ``payload`` must be
        the unparsed body.
        """
        if isinstance(payload, bytes):
            try:
                text = payload.decode('utf-8')
            except UnicodeDecodeError:
                raise SignatureError("Invalid payload", code='invalid_payload')
        else:
            text = payload or ''

        if not sig_header:
            raise SignatureError("Webhook verification failed", details={'reason': 'missing signature header'})

        try:
            stripe.WebhookSignature.verify_header(text, sig_header, secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise SignatureError("Webhook verification failed", details={'reason': str(e)})

        try:
            return WebhookEvent.model_validate(json.loads(text))
        except (ValueError, ValidationError):
            raise SignatureError("Invalid payload", code='invalid_payload')

    def create_payment_intent(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> Any:
        """Create a card-only payment intent; raises ``stripe.StripeError``."""
        if not self.api_key:
            raise RuntimeError("STRIPE_SECRET_KEY missing")
        return stripe.PaymentIntent.create(
            amount=amount_minor,
            currency=currency.lower(),
            payment_method_types=["card"],
            metadata=metadata,
            api_key=self.api_key,
        )


def get_stripe_gateway() -> StripeGateway:
    return current_app.extensions['stripe_gateway']
