# backend/shelfkeep/services/products_service.py
"""
Product Catalog

OWNER SCOPING: every read and write takes the owner id explicitly. Products
of other owners are invisible (NotFound, never Forbidden, so existence is not
revealed).

UPSERT BY BARCODE:
- Barcodes are globally unique. upsert_product() issues a single
  INSERT ... ON CONFLICT (barcode) DO UPDATE, so repeated or concurrent
  submissions of one barcode converge to one row holding the latest values.
- Cross-owner collisions follow BARCODE_CROSS_OWNER_POLICY:
  "reject"   -> the DO UPDATE only fires when the existing row has the same
                owner; otherwise no row comes back and we raise Conflict.
  "transfer" -> last writer wins and the row moves to the submitting owner.
- A submitted current_stock is not written directly. The difference to the
  locked row's stock is recorded as an "adjustment" movement in the same
  transaction, so the ledger always explains current_stock.
"""
from __future__ import annotations

import uuid

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import Conflict, InvalidReference, NotFound, ValidationError
from ..models import Category, Product
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from .concurrency import lock_for_update, write_transaction
from .tenant_service import require_owner
from .inventory_service import apply_movement
from shelfkeep.time_utils import utcnow

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "barcode", "name", "category_id", "unit_type", "purchase_cost",
        "selling_price", "current_stock", "reorder_level", "image",
    },
    required_on_create={"barcode", "name", "selling_price", "category_id"},
)

CROSS_OWNER_POLICIES = ("reject", "transfer")

# Optional fields fall back to these on every submission, so a re-scan
# converges to exactly what was sent.
UPSERT_DEFAULTS = {
    "unit_type": "pcs",
    "purchase_cost": 0,
    "image": None,
}


def _insert_for_dialect():
    dialect = db.engine.dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for barcode upsert: {dialect}")


def _classify_integrity_error(exc: IntegrityError) -> Exception:
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None)
    message = str(orig).lower()
    if pgcode == "23503" or "foreign key" in message:
        return InvalidReference("category_id does not reference an existing category", {"fields": ["category_id"]})
    if pgcode == "23505" or "unique" in message:
        return Conflict("A product with this barcode already exists", {"fields": ["barcode"]})
    if pgcode == "23514" or "check constraint" in message:
        return ValidationError("Product violates a field constraint")
    return exc


def _owned_query(owner_id: str):
    return (
        db.session.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.owner_id == owner_id)
    )


def get_owned_product(
    owner_id: str,
    product_id: uuid.UUID,
    *,
    require_active: bool = False,
    lock: bool = False,
) -> Product:
    query = db.session.query(Product).filter(
        Product.product_id == product_id,
        Product.owner_id == require_owner(owner_id),
    )
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        raise NotFound("Product not found")
    if require_active and not product.is_active:
        raise NotFound("Product not found")
    return product


def upsert_product(
    owner_id: str | None,
    payload: dict,
    *,
    on_conflict: str = "update",
    cross_owner_policy: str = "reject",
    allow_negative_stock: bool = False,
) -> Product:
    """
    Insert or update a product keyed by barcode.

    Args:
        owner_id: Authenticated owner
        payload: Raw product fields
        on_conflict: "update" (upsert) or "reject" (plain insert, duplicate -> Conflict)
        cross_owner_policy: "reject" or "transfer"
        allow_negative_stock: Permit a negative current_stock submission

    Raises:
        Unauthorized, ValidationError, InvalidReference, Conflict
    """
    owner_id = require_owner(owner_id)
    if on_conflict not in ("update", "reject"):
        raise ValidationError("on_conflict must be 'update' or 'reject'", ["on_conflict"])
    if cross_owner_policy not in CROSS_OWNER_POLICIES:
        raise ValueError(f"Unknown cross-owner policy: {cross_owner_policy}")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    desired_stock = patch.pop("current_stock", None)
    if desired_stock is not None and desired_stock < 0 and not allow_negative_stock:
        raise ValidationError("current_stock must be >= 0", ["current_stock"])

    if db.session.get(Category, patch["category_id"]) is None:
        raise InvalidReference(
            "category_id does not reference an existing category",
            {"fields": ["category_id"]},
        )

    now = utcnow()
    values = {**UPSERT_DEFAULTS, **patch}
    values.update({
        "product_id": uuid.uuid4(),
        "owner_id": owner_id,
        "current_stock": 0,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    })
    values.setdefault("reorder_level", 10)

    table = Product.__table__
    stmt = _insert_for_dialect()(table).values(**values)

    if on_conflict == "update":
        excluded = stmt.excluded
        update_set = {
            column: excluded[column]
            for column in ("name", "category_id", "unit_type", "purchase_cost", "selling_price", "image")
        }
        if "reorder_level" in patch:
            update_set["reorder_level"] = excluded["reorder_level"]
        update_set["is_active"] = True
        update_set["updated_at"] = now

        where = None
        if cross_owner_policy == "transfer":
            update_set["owner_id"] = excluded["owner_id"]
        else:
            where = table.c.owner_id == excluded["owner_id"]

        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.barcode],
            set_=update_set,
            where=where,
        )

    stmt = stmt.returning(table.c.product_id)

    with write_transaction():
        try:
            row = db.session.execute(stmt).first()
        except IntegrityError as e:
            classified = _classify_integrity_error(e)
            if classified is e:
                raise
            raise classified from e

        if row is None:
            raise Conflict(
                "Barcode is already registered to another account",
                {"fields": ["barcode"]},
            )

        product = get_owned_product(owner_id, row[0], lock=True)

        if desired_stock is not None:
            delta = desired_stock - product.current_stock
            if delta != 0:
                apply_movement(
                    product,
                    movement_type="adjustment",
                    quantity=delta,
                    reason="Stock count set from catalog",
                    actor_id=owner_id,
                    allow_negative_stock=allow_negative_stock,
                )

    return product


def list_active_products(owner_id: str | None) -> list[Product]:
    owner_id = require_owner(owner_id)
    return (
        _owned_query(owner_id)
        .filter(Product.is_active.is_(True))
        .order_by(Product.created_at.desc(), Product.barcode.asc())
        .all()
    )


def find_by_barcode(owner_id: str | None, barcode: str | None) -> Product:
    owner_id = require_owner(owner_id)
    if not barcode or not barcode.strip():
        raise ValidationError("Barcode is required", ["barcode"])

    product = (
        _owned_query(owner_id)
        .filter(Product.barcode == barcode.strip(), Product.is_active.is_(True))
        .first()
    )
    if product is None:
        raise NotFound("Product not found")
    return product


def list_by_category(owner_id: str | None, category_id: int) -> list[Product]:
    owner_id = require_owner(owner_id)
    return (
        _owned_query(owner_id)
        .filter(Product.category_id == category_id, Product.is_active.is_(True))
        .order_by(Product.created_at.desc(), Product.barcode.asc())
        .all()
    )


def deactivate_product(owner_id: str | None, product_id: uuid.UUID) -> Product:
    """
    Soft-delete: products keep their rows so sales history (RESTRICT FK) and
    stock movements stay intact.
    """
    product = get_owned_product(owner_id, product_id)
    if product.is_active:
        product.is_active = False
        db.session.commit()
    return product
