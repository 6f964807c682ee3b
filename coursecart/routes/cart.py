"""Cart routes for the authenticated purchaser."""
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from coursecart.infra.log import get_logger
from coursecart.services.cart_service import CartService
from coursecart.services.request_context import set_purchaser_context

logger = get_logger('coursecart.cart')

cart_bp = Blueprint("cart", __name__)


def _course_id():
    data = request.get_json(silent=True) or {}
    return str(data.get("courseId") or "").strip()


@cart_bp.route("/api/cart", methods=["GET"])
@jwt_required()
def get_cart():
    user_id = get_jwt_identity()
    set_purchaser_context(user_id)
    items = CartService().list_items(user_id)
    return jsonify([item.to_dict() for item in items]), 200


@cart_bp.route("/api/cart", methods=["POST"])
@jwt_required()
def add_to_cart():
    user_id = get_jwt_identity()
    set_purchaser_context(user_id)
    course_id = _course_id()
    if not course_id:
        return jsonify({"error": "Course ID required"}), 400

    try:
        item, created = CartService().add_item(user_id, course_id)
    except LookupError:
        return jsonify({"error": "Course not found"}), 404

    if not created:
        return jsonify({"message": "Course already in cart"}), 200
    logger.info("Course added to cart", course_id=course_id)
    return jsonify(item.to_dict()), 201


@cart_bp.route("/api/cart", methods=["DELETE"])
@jwt_required()
def remove_from_cart():
    user_id = get_jwt_identity()
    set_purchaser_context(user_id)
    course_id = _course_id()
    if not course_id:
        return jsonify({"error": "Course ID required"}), 400

    if not CartService().remove_item(user_id, course_id):
        return jsonify({"error": "Course not in cart"}), 404
    return jsonify({"message": "Removed from cart"}), 200
