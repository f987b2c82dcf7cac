"""
Sales Recorder

A sale is recorded in one transaction:
- lock every referenced product row, in product_id order
- snapshot each line's unit_selling_price (request value, else the product's
  current selling_price)
- decrement current_stock with store-side expressions
- insert the order header and all its items

Either all of that commits or none of it does. There is no partially
recorded sale.

Overselling is rejected with InsufficientStock unless ALLOW_NEGATIVE_STOCK is
set.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import InsufficientStock, NotFound, ValidationError
from ..models import Product, SalesItem, SalesOrder
from ..validation import MAX_MONEY, validate_sale_items
from .concurrency import lock_for_update, write_transaction
from .tenant_service import require_owner

CENT = Decimal("0.01")
MAX_PAYMENT_METHOD_LENGTH = 50


def _clean_payment_method(payment_method) -> str | None:
    if payment_method is None:
        return None
    if not isinstance(payment_method, str):
        raise ValidationError("payment_method must be a string", ["payment_method"])
    cleaned = payment_method.strip()
    if len(cleaned) > MAX_PAYMENT_METHOD_LENGTH:
        raise ValidationError(
            f"payment_method exceeds max length {MAX_PAYMENT_METHOD_LENGTH}",
            ["payment_method"],
        )
    return cleaned or None


def _lock_products(owner_id: str, product_ids: set) -> dict:
    ordered_ids = sorted(product_ids, key=str)
    products = (
        lock_for_update(
            db.session.query(Product).filter(
                Product.product_id.in_(ordered_ids),
                Product.owner_id == owner_id,
                Product.is_active.is_(True),
            )
        )
        .order_by(Product.product_id.asc())
        .populate_existing()
        .all()
    )
    by_id = {p.product_id: p for p in products}

    missing = [str(pid) for pid in ordered_ids if pid not in by_id]
    if missing:
        raise NotFound("Product not found", {"product_ids": missing})
    return by_id


def record_sale(
    owner_id: str | None,
    items,
    payment_method=None,
    *,
    allow_negative_stock: bool = False,
) -> SalesOrder:
    """
    Record a sale and consume catalog stock atomically.

    Args:
        owner_id: Authenticated owner
        items: [{"product_id", "quantity", "unit_selling_price"?}, ...]
        payment_method: Free-form label (cash, card, e-wallet, ...)
        allow_negative_stock: Permit overselling

    Raises:
        Unauthorized, ValidationError, NotFound, InsufficientStock
    """
    owner_id = require_owner(owner_id)
    lines = validate_sale_items(items)
    payment_method = _clean_payment_method(payment_method)

    requested: dict = {}
    for line in lines:
        requested[line["product_id"]] = requested.get(line["product_id"], 0) + line["quantity"]

    with write_transaction():
        products = _lock_products(owner_id, set(requested))

        if not allow_negative_stock:
            insufficient = [
                {
                    "product_id": str(pid),
                    "requested_quantity": qty,
                    "current_stock": products[pid].current_stock,
                }
                for pid, qty in requested.items()
                if products[pid].current_stock < qty
            ]
            if insufficient:
                raise InsufficientStock("Insufficient stock to record sale", {"items": insufficient})

        order = SalesOrder(owner_id=owner_id, payment_method=payment_method, total_amount=Decimal("0.00"))
        total = Decimal("0.00")
        for index, line in enumerate(lines):
            product = products[line["product_id"]]
            unit_price = line["unit_selling_price"]
            if unit_price is None:
                unit_price = Decimal(product.selling_price).quantize(CENT)
            line_total = (unit_price * line["quantity"]).quantize(CENT)
            if line_total > MAX_MONEY:
                raise ValidationError(
                    f"items[{index}] line total cannot exceed {MAX_MONEY}",
                    [f"items[{index}].quantity"],
                )
            total += line_total

            order.items.append(SalesItem(
                product_id=product.product_id,
                quantity=line["quantity"],
                unit_selling_price=unit_price,
                line_total=line_total,
            ))

        if total > MAX_MONEY:
            raise ValidationError(f"Sale total cannot exceed {MAX_MONEY}", ["items"])
        order.total_amount = total
        db.session.add(order)

        for pid, qty in requested.items():
            products[pid].current_stock = Product.current_stock - qty

        db.session.flush()

    return order


def get_sale(owner_id: str | None, order_id: int) -> SalesOrder:
    owner_id = require_owner(owner_id)
    order = (
        db.session.query(SalesOrder)
        .filter(SalesOrder.id == order_id, SalesOrder.owner_id == owner_id)
        .first()
    )
    if order is None:
        raise NotFound("Sale not found")
    return order


def list_sales(owner_id: str | None) -> list[SalesOrder]:
    owner_id = require_owner(owner_id)
    return (
        db.session.query(SalesOrder)
        .filter(SalesOrder.owner_id == owner_id)
        .order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .all()
    )
