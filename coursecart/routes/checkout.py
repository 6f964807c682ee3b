"""
Stripe checkout routes.

Creates the card payment intent for the purchaser's whole cart; fulfillment
happens later in the webhook.
"""
from decimal import Decimal

from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from pydantic import ValidationError
import stripe

from coursecart.infra.log import get_logger
from coursecart.schemas.checkout import CheckoutRequest
from coursecart.services.checkout_service import CheckoutService
from coursecart.services.errors import CheckoutError
from coursecart.services.request_context import set_purchaser_context
from coursecart.services.stripe_gateway import get_stripe_gateway

logger = get_logger('coursecart.checkout')

checkout_bp = Blueprint("checkout", __name__)


def _json():
    """Safely parse JSON body or return empty dict."""
    return (request.get_json(silent=True) or {}) if request.data else {}


@checkout_bp.route("/api/stripe/checkout-session", methods=["POST"])
@jwt_required()
def create_checkout_session():
    """Creates a payment intent for the purchaser's cart and returns its client secret."""
    user_id = get_jwt_identity()
    set_purchaser_context(user_id)

    try:
        payload = CheckoutRequest.model_validate(_json())
    except ValidationError as e:
        return jsonify({
            "error": "Invalid checkout request",
            "details": e.errors(include_url=False, include_context=False),
        }), 400

    service = CheckoutService(
        gateway=get_stripe_gateway(),
        currency=current_app.config.get("STORE_CURRENCY", "AUD"),
        tolerance=Decimal(str(current_app.config.get("AMOUNT_TOLERANCE", "0.01"))),
    )
    try:
        session = service.create_session(user_id, payload)
    except CheckoutError as e:
        logger.warning(f"Checkout rejected: {e.message}", code=e.code)
        return jsonify(e.to_dict()), e.status_code
    except stripe.StripeError as e:
        msg = getattr(e, "user_message", None) or str(e)
        logger.error(f"Stripe error: {msg}")
        return jsonify({"error": f"Stripe error: {msg}"}), 502
    except Exception:
        logger.exception("Unexpected error creating payment intent")
        return jsonify({"error": "Failed to create payment intent"}), 500

    return jsonify({"clientSecret": session.client_secret}), 200
