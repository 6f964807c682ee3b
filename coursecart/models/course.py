# coursecart/models/course.py
import uuid
from typing import Any, Dict

from coursecart.infra.db import db
from coursecart.models.base import utcnow, money, iso


class Course(db.Model):
    """Pricing view of a catalog course; catalog content lives elsewhere."""
    __tablename__ = "courses"

    id             = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug           = db.Column(db.String(191), unique=True, nullable=False, index=True)
    title          = db.Column(db.String(255), nullable=False)
    price          = db.Column(db.Numeric(10, 2), nullable=False)
    discount_price = db.Column(db.Numeric(10, 2), nullable=True)
    published      = db.Column(db.Boolean, nullable=False, default=True)
    created_at     = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'slug': self.slug,
            'title': self.title,
            'price': money(self.price),
            'discount_price': money(self.discount_price),
            'published': self.published,
            'created_at': iso(self.created_at),
        }
