# Overview: Flask API routes for recording and reading back sales.

# backend/shelfkeep/routes/sales.py
"""
Sales routes.

A sale consumes stock. Recording is atomic: the order, its items and the
stock decrements commit together or the whole request fails.
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth
from ..request_context import current_request_context
from ..services import sales_service
from ..validation import json_object

sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


@sales_bp.post("")
@require_auth
def record_sale():
    """
    Body:
    - items: [{product_id, quantity, unit_selling_price?}, ...]
    - payment_method: optional label
    """
    payload = json_object(request.get_json(silent=True))
    order = sales_service.record_sale(
        current_request_context().user_id,
        payload.get("items"),
        payload.get("payment_method"),
        allow_negative_stock=current_app.config.get("ALLOW_NEGATIVE_STOCK", False),
    )
    return {"message": "Sale recorded", "order": order.to_dict()}, 201


@sales_bp.get("")
@require_auth
def list_sales():
    orders = sales_service.list_sales(current_request_context().user_id)
    return {"orders": [o.to_dict() for o in orders]}


@sales_bp.get("/<int:order_id>")
@require_auth
def get_sale(order_id: int):
    order = sales_service.get_sale(current_request_context().user_id, order_id)
    return {"order": order.to_dict()}
