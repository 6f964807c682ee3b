"""
Order models.

An Order is written exactly once, by the payment webhook, together with its
OrderItems. ``payment_id`` (the processor's payment intent id) is unique and
is the idempotency key for fulfillment; ``order_number`` is unique and is what
customers see.
"""
import uuid
from typing import Any, Dict

from coursecart.infra.db import db
from coursecart.models.base import utcnow, money, iso


class Order(db.Model):
    __tablename__ = "orders"

    STATUS_COMPLETED = 'COMPLETED'

    id              = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number    = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id         = db.Column(db.String(64), nullable=False, index=True)
    status          = db.Column(db.String(16), nullable=False, default=STATUS_COMPLETED)
    total           = db.Column(db.Numeric(10, 2), nullable=False)
    discount        = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax             = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    currency        = db.Column(db.String(3), nullable=False)
    payment_method  = db.Column(db.String(32), nullable=False)
    payment_id      = db.Column(db.String(255), unique=True, nullable=False, index=True)
    coupon_id       = db.Column(db.String(36), db.ForeignKey('coupons.id', ondelete='SET NULL'), nullable=True)
    billing_address = db.Column(db.JSON, nullable=False, default=dict)
    created_at      = db.Column(db.DateTime, nullable=False, default=utcnow)

    items = db.relationship('OrderItem', backref='order', lazy=True, cascade='all, delete-orphan')
    coupon = db.relationship('Coupon', lazy=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'order_number': self.order_number,
            'user_id': self.user_id,
            'status': self.status,
            'total': money(self.total),
            'discount': money(self.discount),
            'tax': money(self.tax),
            'currency': self.currency,
            'payment_method': self.payment_method,
            'payment_id': self.payment_id,
            'coupon': {'code': self.coupon.code} if self.coupon else None,
            'billing_address': self.billing_address or {},
            'items': [item.to_dict() for item in self.items],
            'created_at': iso(self.created_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id        = db.Column(db.Integer, primary_key=True)
    order_id  = db.Column(db.String(36), db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False)
    price     = db.Column(db.Numeric(10, 2), nullable=False)

    course = db.relationship('Course', lazy='joined')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'course_id': self.course_id,
            'title': self.course.title if self.course else None,
            'price': money(self.price),
        }
