"""Cart reads and writes for a single purchaser."""
from typing import List, Tuple

from sqlalchemy.exc import IntegrityError

from coursecart.infra.db import db
from coursecart.models import CartItem, Course


class CartService:

    def __init__(self, session=None):
        self.session = session or db.session

    def list_items(self, user_id: str) -> List[CartItem]:
        return (
            self.session.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.added_at.desc(), CartItem.id.desc())
            .all()
        )

    def add_item(self, user_id: str, course_id: str) -> Tuple[CartItem, bool]:
        """Returns (item, created). Raises LookupError for unknown or unpublished courses."""
        existing = self.session.query(CartItem).filter_by(user_id=user_id, course_id=course_id).first()
        if existing:
            return existing, False

        course = self.session.get(Course, course_id)
        if course is None or not course.published:
            raise LookupError(course_id)

        item = CartItem(user_id=user_id, course_id=course_id)
        self.session.add(item)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent add of the same course.
            self.session.rollback()
            return self.session.query(CartItem).filter_by(user_id=user_id, course_id=course_id).one(), False
        return item, True

    def remove_item(self, user_id: str, course_id: str) -> bool:
        deleted = (
            self.session.query(CartItem)
            .filter_by(user_id=user_id, course_id=course_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted > 0
