# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/shelfkeep/routes/products.py
"""
Product catalog routes.

OWNER SCOPING: every route requires an authenticated owner. The owner id is
taken from the request context (resolved from the bearer token) and passed
to the service explicitly. Clients never supply it.
"""
from uuid import UUID

from flask import Blueprint, current_app, request

from ..decorators import require_auth
from ..request_context import current_request_context
from ..services import products_service
from ..validation import json_object

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_auth
def list_products():
    """List the caller's active products, newest first."""
    products = products_service.list_active_products(current_request_context().user_id)
    return {"products": [p.to_dict() for p in products]}


@products_bp.post("")
@require_auth
def upsert_product():
    """
    Create or update a product keyed by barcode.

    Query params:
    - on_conflict: "update" (default) or "reject". With "reject" an existing
      barcode is reported as 409 instead of being overwritten.
    """
    payload = json_object(request.get_json(silent=True))

    product = products_service.upsert_product(
        current_request_context().user_id,
        payload,
        on_conflict=request.args.get("on_conflict", "update"),
        cross_owner_policy=current_app.config.get("BARCODE_CROSS_OWNER_POLICY", "reject"),
        allow_negative_stock=current_app.config.get("ALLOW_NEGATIVE_STOCK", False),
    )
    return {"message": "Product saved successfully", "product": product.to_dict()}, 201


@products_bp.get("/search")
@require_auth
def search_by_barcode():
    product = products_service.find_by_barcode(
        current_request_context().user_id,
        request.args.get("barcode"),
    )
    return {"product": product.to_dict()}


@products_bp.get("/category/<int:category_id>")
@require_auth
def list_by_category(category_id: int):
    products = products_service.list_by_category(current_request_context().user_id, category_id)
    return {"products": [p.to_dict() for p in products]}


@products_bp.delete("/<uuid:product_id>")
@require_auth
def deactivate_product(product_id: UUID):
    """
    Deactivate (soft delete) a product.

    Sales history references products with ON DELETE RESTRICT, so rows are
    kept and simply hidden from catalog reads.
    """
    products_service.deactivate_product(current_request_context().user_id, product_id)
    return {"message": "Product deactivated"}
