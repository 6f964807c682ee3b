"""
Unified database infrastructure module.

All models should import the SQLAlchemy instance from here.
"""

from coursecart.database import db

__all__ = ["db"]
