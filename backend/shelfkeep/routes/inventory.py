# Overview: Flask API routes for stock movements and stock reconciliation.

# backend/shelfkeep/routes/inventory.py
from uuid import UUID

from flask import Blueprint, current_app, request

from ..decorators import require_auth
from ..request_context import current_request_context
from ..services import inventory_service
from ..validation import json_object
from shelfkeep.time_utils import parse_timestamp_param

inventory_bp = Blueprint("inventory", __name__, url_prefix="/products")


@inventory_bp.post("/<uuid:product_id>/stock-movements")
@require_auth
def record_movement(product_id: UUID):
    """
    Record a non-sale stock event.

    Body:
    - type: add_stock | return | adjustment | wastage
    - quantity: signed integer (add_stock/return > 0, wastage < 0)
    - reason: optional free text
    """
    payload = json_object(request.get_json(silent=True))
    ctx = current_request_context()

    movement, product = inventory_service.record_movement(
        ctx.user_id,
        product_id,
        payload.get("type"),
        payload.get("quantity"),
        payload.get("reason"),
        actor_id=ctx.user_id,
        allow_negative_stock=current_app.config.get("ALLOW_NEGATIVE_STOCK", False),
    )
    return {
        "message": "Stock movement recorded",
        "movement": movement.to_dict(),
        "product": product.to_dict(),
    }, 201


@inventory_bp.get("/<uuid:product_id>/stock-movements")
@require_auth
def list_movements(product_id: UUID):
    since = parse_timestamp_param("since", request.args.get("since"))

    movements = inventory_service.list_movements(current_request_context().user_id, product_id, since)
    return {"movements": [m.to_dict() for m in movements]}


@inventory_bp.get("/<uuid:product_id>/stock")
@require_auth
def stock_summary(product_id: UUID):
    summary = inventory_service.get_stock_summary(current_request_context().user_id, product_id)
    return {"stock": summary.to_dict()}
