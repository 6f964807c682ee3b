import hashlib
import hmac
import json
import os
import tempfile
import time
import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY

# Set test environment variables
os.environ["TESTING"] = "true"
os.environ["COURSECART_LOG_JSON"] = "false"

WEBHOOK_SECRET = "whsec_test_secret_for_signing"
JWT_TEST_SECRET = "test-jwt-secret-key-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def clear_prometheus_registry():
    """Clear the default prometheus registry before each test."""
    collectors = list(REGISTRY._collector_to_names.keys())
    for collector in collectors:
        REGISTRY.unregister(collector)
    yield


@pytest.fixture
def app(monkeypatch):
    """Create and configure a new app instance for each test."""
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    db_fd, db_path = tempfile.mkstemp()
    with patch.dict(os.environ, {
        "DATABASE_URL": f"sqlite:///{db_path}",
        "JWT_SECRET_KEY": JWT_TEST_SECRET,
        "STRIPE_SECRET_KEY": "sk_test_dummy_key_for_testing",
    }):
        from coursecart.factory import create_app
        from coursecart.database import db
        app = create_app()
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.drop_all()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer headers for a purchaser id."""
    from flask_jwt_extended import create_access_token

    def _headers(user_id="user_1"):
        token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_course(app):
    from coursecart.database import db
    from coursecart.models import Course

    def _make(price="75.00", discount_price=None, published=True, title=None):
        slug = f"course-{uuid.uuid4().hex[:8]}"
        course = Course(
            slug=slug,
            title=title or slug.replace("-", " ").title(),
            price=Decimal(price),
            discount_price=Decimal(discount_price) if discount_price is not None else None,
            published=published,
        )
        db.session.add(course)
        db.session.commit()
        return course
    return _make


@pytest.fixture
def add_to_cart(app):
    from coursecart.database import db
    from coursecart.models import CartItem

    def _add(user_id, *courses):
        for course in courses:
            db.session.add(CartItem(user_id=user_id, course_id=course.id))
        db.session.commit()
    return _add


@pytest.fixture
def make_coupon(app):
    from coursecart.database import db
    from coursecart.models import Coupon
    from coursecart.models.base import utcnow

    def _make(code="SAVE10", discount_type="PERCENTAGE", value="10", cap=None,
              active=True, ends_in=timedelta(days=30), **extra):
        coupon = Coupon(
            code=code,
            discount_type=discount_type,
            discount_value=Decimal(value),
            max_discount_amount=Decimal(cap) if cap is not None else None,
            is_active=active,
            end_date=utcnow() + ends_in,
            used_count=extra.pop("used_count", 0),
            **extra
        )
        db.session.add(coupon)
        db.session.commit()
        return coupon
    return _make


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header value for ``payload`` (t=<ts>,v1=<hmac-sha256>)."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def build_event(payment_id="pi_test_123", amount=15000, metadata=None,
                event_type="payment_intent.succeeded"):
    return {
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": payment_id,
                "object": "payment_intent",
                "amount": amount,
                "currency": "aud",
                "metadata": metadata or {},
            }
        },
    }


@pytest.fixture
def post_webhook(client):
    """Sign and POST an event dict (or raw bytes) to the webhook endpoint."""
    def _post(event, secret=WEBHOOK_SECRET, signature=None):
        payload = event if isinstance(event, bytes) else json.dumps(event).encode("utf-8")
        headers = {}
        if signature is not False:
            headers["Stripe-Signature"] = signature or stripe_signature(payload, secret)
        return client.post(
            "/api/stripe/webhook",
            data=payload,
            headers=headers,
            content_type="application/json",
        )
    return _post


@pytest.fixture
def event_factory():
    return build_event
