# -*- coding: utf-8 -*-
"""
Fulfillment error taxonomy.

Each error knows the HTTP status the payment processor should see. The
status decides redelivery: 5xx and 4xx responses are both retried by the
processor, 2xx is final.
"""
from typing import Any, Dict, Optional


class FulfillmentError(Exception):
    """Base class for failures while turning a payment into an order."""

    code = 'fulfillment_error'
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None,
                 status_code: Optional[int] = None, details: Optional[dict] = None):
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to error response body."""
        body = {'error': self.message, 'code': self.code}
        if self.details:
            body['details'] = self.details
        return body


class WebhookConfigError(FulfillmentError):
    """Webhook signing secret is not configured."""
    code = 'webhook_not_configured'
    status_code = 500


class SignatureError(FulfillmentError):
    """Webhook body failed signature verification or could not be parsed."""
    code = 'webhook_verification_failed'
    status_code = 400


class MetadataError(FulfillmentError):
    """Payment intent metadata is missing the purchaser or course ids."""
    code = 'missing_metadata'
    status_code = 400


class EmptyCartError(FulfillmentError):
    code = 'empty_cart'
    status_code = 400


class AmountMismatchError(FulfillmentError):
    """Captured amount disagrees with the server-side total."""
    code = 'amount_mismatch'
    status_code = 400


class PersistenceError(FulfillmentError):
    code = 'persistence_failed'
    status_code = 500


class CheckoutError(FulfillmentError):
    """Checkout request rejected before a payment intent is created."""
    code = 'checkout_rejected'
    status_code = 400
