"""
Shared Flask-SQLAlchemy instance.

Models and services import ``db`` from here (or from ``coursecart.infra``);
the application factory binds it to the app with ``db.init_app``.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

__all__ = ["db"]
