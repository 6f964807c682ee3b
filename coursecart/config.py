import os
from decimal import Decimal


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-key")
    JWT_ALGORITHM = "HS256"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STORE_CURRENCY = os.getenv("STORE_CURRENCY", "AUD").upper()
    PAYMENT_METHOD_LABEL = os.getenv("PAYMENT_METHOD_LABEL", "card")
    AMOUNT_TOLERANCE = Decimal(os.getenv("AMOUNT_TOLERANCE", "0.01"))
    ORDER_NUMBER_ATTEMPTS = int(os.getenv("ORDER_NUMBER_ATTEMPTS", "3"))
    COUPON_HONOR_CHECKOUT_SNAPSHOT = _flag("COUPON_HONOR_CHECKOUT_SNAPSHOT")
    CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000")


def webhook_secret():
    """Webhook signing secret, read from the environment on every call."""
    secret = os.getenv("STRIPE_WEBHOOK_SECRET", "").strip()
    return secret or None
