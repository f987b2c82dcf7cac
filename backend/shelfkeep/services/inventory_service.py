# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# backend/shelfkeep/services/inventory_service.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..errors import InsufficientStock, ValidationError
from ..models import Product, StockMovement, SalesItem
from ..validation import enforce_rules_stock_movement, parse_int
from .concurrency import write_transaction
"""
Stock Ledger Invariants (authoritative)

Movement model:
- stock_movements is append-only. Rows are never updated or deleted except
  by ON DELETE CASCADE when their product is deleted.
- quantity is signed: add_stock/return > 0, wastage < 0, adjustment != 0.

Running total:
- products.current_stock is maintained, not recomputed on read.
- Every movement and every sale line changes it with a store-side
  `current_stock + delta` expression, in the same transaction as the row
  that explains the change, while the product row is locked.
- Therefore, for every product:
      current_stock == SUM(stock_movements.quantity) - SUM(sales_items.quantity)
  get_stock_summary() reports whether that holds.

Negative stock:
- Rejected with InsufficientStock unless ALLOW_NEGATIVE_STOCK is set.
"""

MAX_REASON_LENGTH = 500


def apply_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    reason: str | None,
    actor_id: str,
    allow_negative_stock: bool = False,
) -> StockMovement:
    """
    Append a movement and adjust the running total.

    The caller must hold the product row lock inside an open write
    transaction (see write_transaction / get_owned_product(lock=True)).
    Does not commit.
    """
    enforce_rules_stock_movement(movement_type, quantity)

    resulting = product.current_stock + quantity
    if resulting < 0 and not allow_negative_stock:
        raise InsufficientStock(
            "Stock cannot go below zero",
            details={
                "product_id": str(product.product_id),
                "current_stock": product.current_stock,
                "requested_change": quantity,
            },
        )

    product.current_stock = Product.current_stock + quantity

    movement = StockMovement(
        product_id=product.product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        actor_id=actor_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def _clean_reason(reason) -> str | None:
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError("reason must be a string", ["reason"])
    cleaned = reason.strip()
    if len(cleaned) > MAX_REASON_LENGTH:
        raise ValidationError(f"reason exceeds max length {MAX_REASON_LENGTH}", ["reason"])
    return cleaned or None


def record_movement(
    owner_id: str | None,
    product_id: uuid.UUID,
    movement_type,
    quantity,
    reason=None,
    *,
    actor_id: str | None = None,
    allow_negative_stock: bool = False,
) -> tuple[StockMovement, Product]:
    """
    Record a restock, return, adjustment or wastage for an owned product.

    The movement insert and the current_stock change commit together.

    Returns:
        (movement, product) with product reflecting the new current_stock

    Raises:
        Unauthorized, ValidationError, NotFound, InsufficientStock
    """
    from .products_service import get_owned_product

    if movement_type is None or quantity is None:
        missing = [name for name, value in (("type", movement_type), ("quantity", quantity)) if value is None]
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

    quantity = parse_int("quantity", quantity)
    enforce_rules_stock_movement(movement_type, quantity)
    reason = _clean_reason(reason)

    with write_transaction():
        product = get_owned_product(owner_id, product_id, require_active=True, lock=True)
        movement = apply_movement(
            product,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            actor_id=actor_id or owner_id,
            allow_negative_stock=allow_negative_stock,
        )

    return movement, product


def list_movements(
    owner_id: str | None,
    product_id: uuid.UUID,
    since: datetime | None = None,
) -> list[StockMovement]:
    from .products_service import get_owned_product

    product = get_owned_product(owner_id, product_id)
    q = db.session.query(StockMovement).filter(StockMovement.product_id == product.product_id)
    if since is not None:
        q = q.filter(StockMovement.created_at >= since)
    return q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()


@dataclass(frozen=True)
class StockSummary:
    product_id: uuid.UUID
    current_stock: int
    movement_total: int
    units_sold: int
    reorder_level: int

    @property
    def derived_stock(self) -> int:
        return self.movement_total - self.units_sold

    @property
    def is_consistent(self) -> bool:
        return self.derived_stock == self.current_stock

    @property
    def needs_reorder(self) -> bool:
        return self.current_stock <= self.reorder_level

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "current_stock": self.current_stock,
            "movement_total": self.movement_total,
            "units_sold": self.units_sold,
            "derived_stock": self.derived_stock,
            "is_consistent": self.is_consistent,
            "reorder_level": self.reorder_level,
            "needs_reorder": self.needs_reorder,
        }


def _summarize(product: Product) -> StockSummary:
    movement_total = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity), 0)
    ).filter(StockMovement.product_id == product.product_id).scalar()

    units_sold = db.session.query(
        func.coalesce(func.sum(SalesItem.quantity), 0)
    ).filter(SalesItem.product_id == product.product_id).scalar()

    return StockSummary(
        product_id=product.product_id,
        current_stock=product.current_stock,
        movement_total=int(movement_total or 0),
        units_sold=int(units_sold or 0),
        reorder_level=product.reorder_level,
    )


def get_stock_summary(owner_id: str | None, product_id: uuid.UUID) -> StockSummary:
    """Reconcile the maintained current_stock against the ledger-derived quantity."""
    from .products_service import get_owned_product

    return _summarize(get_owned_product(owner_id, product_id))


def find_inconsistent_products(owner_id: str) -> list[StockSummary]:
    products = (
        db.session.query(Product)
        .filter(Product.owner_id == owner_id)
        .order_by(Product.created_at.asc())
        .all()
    )
    summaries = (_summarize(p) for p in products)
    return [s for s in summaries if not s.is_consistent]
