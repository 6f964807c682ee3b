"""
Coupon model.

A coupon is a named discount rule redeemed at checkout. Codes are matched
case-insensitively; ``used_count`` is bumped once per finalized order that
redeemed it.
"""
import uuid
from typing import Any, Dict

from coursecart.infra.db import db
from coursecart.models.base import utcnow, money, iso


class Coupon(db.Model):
    __tablename__ = "coupons"

    PERCENTAGE = 'PERCENTAGE'
    FIXED = 'FIXED'
    DISCOUNT_TYPES = (PERCENTAGE, FIXED)

    id                  = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code                = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description         = db.Column(db.Text)
    discount_type       = db.Column(db.String(16), nullable=False, default=PERCENTAGE)
    discount_value      = db.Column(db.Numeric(10, 2), nullable=False)
    max_discount_amount = db.Column(db.Numeric(10, 2), nullable=True)
    min_order_value     = db.Column(db.Numeric(10, 2), nullable=True)
    max_uses            = db.Column(db.Integer, nullable=True)
    used_count          = db.Column(db.Integer, nullable=False, default=0)
    start_date          = db.Column(db.DateTime, nullable=True)
    end_date            = db.Column(db.DateTime, nullable=False)
    is_active           = db.Column(db.Boolean, nullable=False, default=True)
    created_at          = db.Column(db.DateTime, nullable=False, default=utcnow)

    @classmethod
    def find_by_code(cls, code: str):
        """Case-insensitive lookup; returns None for blank codes."""
        code = (code or '').strip()
        if not code:
            return None
        return cls.query.filter(db.func.lower(cls.code) == code.lower()).first()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'discount_type': self.discount_type,
            'discount_value': money(self.discount_value),
            'max_discount_amount': money(self.max_discount_amount),
            'min_order_value': money(self.min_order_value),
            'max_uses': self.max_uses,
            'used_count': self.used_count,
            'start_date': iso(self.start_date),
            'end_date': iso(self.end_date),
            'is_active': self.is_active,
        }
