# -*- coding: utf-8 -*-
from coursecart.infra.db import db

from .course import Course
from .cart import CartItem
from .coupon import Coupon
from .order import Order, OrderItem

__all__ = ["db", "Course", "CartItem", "Coupon", "Order", "OrderItem"]
