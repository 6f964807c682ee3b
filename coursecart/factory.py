# -*- coding: utf-8 -*-
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from coursecart.config import Config
from coursecart.database import db

# Observability imports
from coursecart.services.metrics import init_metrics
from coursecart.services.request_context import init_request_context
from coursecart.services.structured_logging import init_logging

from coursecart.services.stripe_gateway import StripeGateway


def _normalize_db_url(url: str) -> str:
    """
    Normalize DATABASE_URL so SQLAlchemy loads the psycopg v3 driver.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg://" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _migrate_db(app):
    """Run Alembic migrations to head using the app's DB URL."""
    from pathlib import Path
    from alembic import command
    from alembic.config import Config as AlembicConfig

    base_dir = Path(__file__).resolve().parent.parent
    cfg = AlembicConfig()  # in-memory config, avoid alembic.ini dependency
    cfg.set_main_option("script_location", str(base_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])

    command.upgrade(cfg, "head")
    app.logger.info("Database migrations applied successfully")


def create_app(stripe_gateway: Optional[StripeGateway] = None) -> Flask:
    """
    Build the application.

    ``stripe_gateway`` replaces the Stripe client built from
    ``STRIPE_SECRET_KEY``; it lives for the whole process on
    ``app.extensions['stripe_gateway']``.
    """
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # --- Core config ---
    app.config.from_object(Config)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", app.config["SECRET_KEY"])
    app.config["JWT_SECRET_KEY"] = os.environ.get("JWT_SECRET_KEY", app.config["JWT_SECRET_KEY"])
    app.config["STRIPE_SECRET_KEY"] = os.environ.get("STRIPE_SECRET_KEY", app.config["STRIPE_SECRET_KEY"])

    is_testing = os.getenv("TESTING", "false").lower() == "true"
    app.config["TESTING"] = is_testing

    # --- DB config ---
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        db_path = os.path.join(app.instance_path, "coursecart.db")
        os.makedirs(app.instance_path, exist_ok=True)
        db_url = f"sqlite:///{db_path}"
    else:
        db_url = _normalize_db_url(db_url)

    app.config["SQLALCHEMY_DATABASE_URI"] = db_url
    if not db_url.startswith("sqlite"):
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_pre_ping": True,
            "pool_recycle": 300,
        }
    db.init_app(app)

    # --- Auth (bearer tokens; identity is the purchaser id) ---
    JWTManager(app)

    # --- CORS ---
    cors_origins = [o.strip() for o in app.config["CORS_ALLOWED_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={
        r"/api/*": {
            "origins": cors_origins,
            "methods": ["GET", "POST", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "supports_credentials": False,
            "max_age": 600,
        }}
    )

    # --- Payment processor client ---
    app.extensions["stripe_gateway"] = stripe_gateway or StripeGateway(
        api_key=app.config["STRIPE_SECRET_KEY"])

    # --- Initialize observability ---
    init_logging(app)
    init_request_context(app)
    init_metrics(app)

    from coursecart.middleware.errors import register_error_handlers
    register_error_handlers(app)

    # --- Mount blueprints ---
    with app.app_context():
        from coursecart import models  # noqa: F401  register tables
        from coursecart.routes import cart, checkout, health, orders, stripe_webhooks
        app.register_blueprint(health.health_bp)
        app.register_blueprint(stripe_webhooks.stripe_webhooks_bp)
        app.register_blueprint(checkout.checkout_bp)
        app.register_blueprint(cart.cart_bp)
        app.register_blueprint(orders.orders_bp)

    # --- DB init ---
    with app.app_context():
        if is_testing or os.getenv("COURSECART_DB_AUTOCREATE", "false").lower() == "true":
            db.create_all()
        elif os.getenv("COURSECART_DB_MIGRATE_ON_START", "true").lower() == "true":
            try:
                _migrate_db(app)
            except Exception as e:
                app.logger.error(f"Migration failed: {e}")
                raise

    return app
