from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models import UNIT_TYPES, MOVEMENT_TYPES


# Numeric(10, 2) upper bound
MAX_MONEY = Decimal("99999999.99")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(key: str, value: Any) -> int:
    # bool is a subclass of int but never a valid quantity
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer", [key])
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)", [key])
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)", [key])
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer", [key])
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal", [key])
    raise ValidationError(f"{key} must be an integer", [key])


def parse_money(key: str, value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{key} must be a number", [key])
    try:
        # str() first so floats like 19.99 do not carry binary noise
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number", [key])
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number", [key])
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{key} cannot have more than 2 decimal places", [key])
    return amount.quantize(CENT)


def parse_uuid(key: str, value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError):
        raise ValidationError(f"{key} must be a UUID", [key])


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(col.key, value)

    if isinstance(coltype, Numeric):
        return parse_money(col.key, value)

    if isinstance(coltype, Uuid):
        return parse_uuid(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false", [col.key])

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    All missing required fields are reported together so the caller can fix
    the submission in one round trip.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if _is_missing(payload.get(f)))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

    cols = _columns_by_key(model)

    not_allowed = sorted(k for k in payload.keys() if k not in policy.writable_fields or k not in cols)
    if not_allowed:
        raise ValidationError(f"Field not allowed: {', '.join(not_allowed)}", not_allowed)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", [k])
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", [k])

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", [k])

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "unit_type" in patch and patch["unit_type"] not in UNIT_TYPES:
        raise ValidationError(f"unit_type must be one of: {', '.join(UNIT_TYPES)}", ["unit_type"])

    if patch.get("selling_price") is not None:
        price = patch["selling_price"]
        if price <= 0:
            raise ValidationError("selling_price must be > 0", ["selling_price"])
        if price > MAX_MONEY:
            raise ValidationError(f"selling_price cannot exceed {MAX_MONEY}", ["selling_price"])

    if patch.get("purchase_cost") is not None:
        cost = patch["purchase_cost"]
        if cost < 0:
            raise ValidationError("purchase_cost must be >= 0", ["purchase_cost"])
        if cost > MAX_MONEY:
            raise ValidationError(f"purchase_cost cannot exceed {MAX_MONEY}", ["purchase_cost"])

    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorder_level must be >= 0", ["reorder_level"])

    image = patch.get("image")
    if image and "://" not in image and not image.startswith("data:"):
        raise ValidationError("image must be a URI", ["image"])


def enforce_rules_stock_movement(movement_type: str, quantity: int) -> None:
    """
    Sign convention: add_stock and return increase stock, wastage decreases
    it, adjustment may go either way. Zero-quantity movements are rejected.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}", ["type"])

    if quantity == 0:
        raise ValidationError("quantity must be non-zero", ["quantity"])

    if movement_type in ("add_stock", "return") and quantity < 0:
        raise ValidationError(f"quantity must be > 0 for {movement_type}", ["quantity"])

    if movement_type == "wastage" and quantity > 0:
        raise ValidationError("quantity must be < 0 for wastage", ["quantity"])


def validate_sale_items(items: Any) -> list[dict]:
    """
    Normalize sale line input into [{product_id, quantity, unit_selling_price}].

    unit_selling_price is optional; None means "snapshot the product's
    current selling_price".
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", ["items"])

    cleaned = []
    for index, raw in enumerate(items):
        prefix = f"items[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{prefix} must be an object", [prefix])

        missing = [f"{prefix}.{f}" for f in ("product_id", "quantity") if _is_missing(raw.get(f))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

        product_id = parse_uuid(f"{prefix}.product_id", raw["product_id"])
        quantity = parse_int(f"{prefix}.quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"{prefix}.quantity must be > 0", [f"{prefix}.quantity"])

        unit_price = None
        if raw.get("unit_selling_price") is not None:
            unit_price = parse_money(f"{prefix}.unit_selling_price", raw["unit_selling_price"])
            if unit_price <= 0:
                raise ValidationError(
                    f"{prefix}.unit_selling_price must be > 0",
                    [f"{prefix}.unit_selling_price"],
                )

        cleaned.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_selling_price": unit_price,
        })

    return cleaned


def json_object(payload: Any) -> dict:
    """Request bodies are JSON objects; a missing body is treated as empty."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
