# Overview: Service-layer operations for the shared category vocabulary.

"""
Category Store

Categories are global and deduplicated ignoring case. Creating a category
that already exists is not an error: the existing row is returned and the
caller is told it was not created.

Under concurrent duplicate submissions the lower(name) unique index decides;
a late IntegrityError is treated as "already exists" and the winner's row is
re-fetched.

Deleting a category never fails because products use it: the foreign key is
ON DELETE SET NULL, so those products simply become uncategorized.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import Category

MAX_NAME_LENGTH = 100


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()


def find_by_name(name: str) -> Category | None:
    return (
        db.session.query(Category)
        .filter(func.lower(Category.name) == func.lower(name))
        .first()
    )


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Category name required", ["name"])
    cleaned = name.strip()
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"name exceeds max length {MAX_NAME_LENGTH}", ["name"])
    return cleaned


def create_category(name) -> tuple[Category, bool]:
    """
    Idempotent create.

    Returns:
        (category, created) where created is False when a category with the
        same name (ignoring case) already existed.
    """
    cleaned = _clean_name(name)

    existing = find_by_name(cleaned)
    if existing:
        return existing, False

    category = Category(name=cleaned)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = find_by_name(cleaned)
        if existing is None:
            raise
        current_app.logger.info("Category %r created concurrently; returning existing row", cleaned)
        return existing, False

    return category, True


def delete_category(category_id: int) -> None:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")

    db.session.delete(category)
    db.session.commit()


def seed_default_categories(names: list[str]) -> list[str]:
    """Insert any missing default categories. Returns the names that were created."""
    created = []
    for name in names:
        _, was_created = create_category(name)
        if was_created:
            created.append(name)
    return created
