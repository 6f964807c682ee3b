# -*- coding: utf-8 -*-
"""
Stripe Webhook Handler.

Fulfills course orders from ``payment_intent.succeeded`` events. Every other
event type is acknowledged and dropped. Responses follow the processor
contract: 200 ``{"received": true}`` for fulfilled, replayed and ignored
events, 400/500 with ``{"error": ...}`` otherwise.
"""
from flask import Blueprint, request, jsonify, current_app

from coursecart.config import webhook_secret
from coursecart.infra.db import db
from coursecart.infra.log import get_logger
from coursecart.services.errors import FulfillmentError, SignatureError, WebhookConfigError
from coursecart.services.metrics import get_metrics_service
from coursecart.services.order_finalizer import CREATED, FulfillmentSettings, OrderFinalizer
from coursecart.services.stripe_gateway import get_stripe_gateway
from coursecart.services.structured_logging import log_signature_failure

logger = get_logger('coursecart.webhooks')

stripe_webhooks_bp = Blueprint('stripe_webhooks', __name__)


@stripe_webhooks_bp.route('/api/stripe/webhook', methods=['POST'])
def stripe_webhook():
    payload = request.get_data(cache=False)
    sig_header = request.headers.get('Stripe-Signature')
    event_type = None

    try:
        secret = webhook_secret()
        if not secret:
            raise WebhookConfigError("Webhook secret not configured")

        event = get_stripe_gateway().construct_event(payload, sig_header, secret)
        event_type = event.type

        finalizer = OrderFinalizer(
            session=db.session,
            settings=FulfillmentSettings.from_config(current_app.config),
        )
        result = finalizer.handle_event(event)

    except FulfillmentError as e:
        return _error_response(e, event_type)
    except Exception:
        db.session.rollback()
        logger.exception("Error processing webhook", webhook_event=event_type)
        return _error_response(FulfillmentError("Failed to process webhook", code="webhook_failed"), event_type)

    _record(event_type, result.status)
    logger.log_webhook_event(
        event_type,
        result.status,
        stripe_event_id=event.id,
        order_number=result.order_number,
        payment_id=result.payment_id,
    )
    if result.status == CREATED:
        metrics = get_metrics_service()
        if metrics:
            metrics.record_order_created(current_app.config.get('STORE_CURRENCY', 'AUD'))
    return jsonify({'received': True}), 200


def _error_response(error: FulfillmentError, event_type):
    """Map a fulfillment failure to the processor-facing response."""
    if isinstance(error, SignatureError):
        log_signature_failure(error.code, details=error.details)
    elif isinstance(error, WebhookConfigError):
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
    elif error.status_code >= 500:
        logger.error(f"Webhook failed: {error.message}", webhook_event=event_type, code=error.code,
                     cause=repr(error.__cause__) if error.__cause__ else None)
    else:
        logger.log_webhook_event(event_type or 'unknown', error.code, details=error.details)

    _record(event_type, error.code)
    return jsonify(error.to_dict()), error.status_code


def _record(event_type, outcome: str):
    metrics = get_metrics_service()
    if metrics:
        metrics.record_webhook_event(event_type or 'unknown', outcome)
