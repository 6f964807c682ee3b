"""Order lookup for the purchaser who placed it."""
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from coursecart.models import Order
from coursecart.services.request_context import set_purchaser_context

orders_bp = Blueprint("orders", __name__)


@orders_bp.route("/api/orders/<order_number>", methods=["GET"])
@jwt_required()
def get_order(order_number):
    user_id = get_jwt_identity()
    set_purchaser_context(user_id)

    order = Order.query.filter_by(order_number=order_number.upper()).first()
    if order is None:
        return jsonify({"error": "Order not found"}), 404
    if order.user_id != user_id:
        return jsonify({"error": "Access denied to this order"}), 403
    return jsonify(order.to_dict()), 200
