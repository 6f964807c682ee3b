# coursecart/models/cart.py
from typing import Any, Dict

from coursecart.infra.db import db
from coursecart.models.base import utcnow, iso


class CartItem(db.Model):
    """One course waiting to be bought by one purchaser."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', name='uq_cart_items_user_course'),
    )

    id        = db.Column(db.Integer, primary_key=True)
    user_id   = db.Column(db.String(64), nullable=False, index=True)
    course_id = db.Column(db.String(36), db.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False)
    added_at  = db.Column(db.DateTime, nullable=False, default=utcnow)

    course = db.relationship('Course', lazy='joined')

    def to_dict(self) -> Dict[str, Any]:
        data = self.course.to_dict() if self.course else {'id': self.course_id}
        data['added_at'] = iso(self.added_at)
        return data
