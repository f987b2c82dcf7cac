# Overview: Flask API routes for the shared category vocabulary.

# backend/shelfkeep/routes/categories.py
"""
Category routes.

Categories are global and these routes do not require authentication. A
bearer token that is presented must still be valid (checked by the request
hook before any handler runs).
"""
from flask import Blueprint, request

from ..services import category_service
from ..validation import json_object

categories_bp = Blueprint("categories", __name__, url_prefix="/categories")


@categories_bp.get("")
def list_categories():
    categories = category_service.list_categories()
    return {"categories": [c.to_dict() for c in categories]}


@categories_bp.post("")
def create_category():
    """
    Create a category, or return the existing one with the same name.

    201 when created, 200 when it already existed.
    """
    payload = json_object(request.get_json(silent=True))
    category, created = category_service.create_category(payload.get("name"))

    if created:
        return {"message": "Category created", "category": category.to_dict()}, 201
    return {"message": "Category already exists", "category": category.to_dict()}, 200


@categories_bp.delete("/<int:category_id>")
def delete_category(category_id: int):
    category_service.delete_category(category_id)
    return {"message": "Category deleted"}
