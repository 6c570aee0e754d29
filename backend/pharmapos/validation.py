from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .records import SaleLineRequest


# Maximum price: 9,999,999.99
MAX_PRICE = Decimal("9999999.99")
# Largest value a 32-bit INTEGER column holds
MAX_DB_INT = 2**31 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: column keys clients are allowed to set (security boundary)
    - required_on_create: column keys required for POST
    - aliases: JSON field name -> column key (the API speaks camelCase)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(name: str, value: Any) -> int:
    # bool is an int subclass; never accept it as a number
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def _coerce_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, (int, float, str, Decimal)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
        if not result.is_finite():
            raise ValidationError(f"{name} must be a finite number")
        return result
    raise ValidationError(f"{name} must be a number")


def _coerce_value(col, value: Any, name: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(name, value)

    if isinstance(coltype, Numeric):
        return _coerce_decimal(name, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{name} must be a boolean")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


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
    - a policy allowlist (writable_fields), after alias translation
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    keyed = {policy.aliases.get(k, k): (k, v) for k, v in payload.items()}
    reverse_aliases = {v: k for k, v in policy.aliases.items()}

    if not partial:
        missing = sorted(reverse_aliases.get(f, f) for f in policy.required_on_create if f not in keyed)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for key, (name, _raw) in keyed.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {name}")
        if key not in cols:
            raise ValidationError(f"Unknown field: {name}")

    patch: dict = {}

    for key, (name, raw) in keyed.items():
        col = cols[key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{name} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, raw, name)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{name} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{name} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "quantity" in patch and patch["quantity"] is not None:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")

    for key, label in (("price", "price"), ("purchase_price", "purchasePrice")):
        value = patch.get(key)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{label} must be >= 0")
        if value > MAX_PRICE:
            raise ValidationError(f"{label} cannot exceed {MAX_PRICE:,}")


def parse_basket(payload: Any) -> list[SaleLineRequest]:
    """
    Turn the checkout JSON body into SaleLineRequest objects.

    Only shape, types and storage range are checked here. Empty baskets and
    non-positive quantities are left to the sale validator so every caller of
    the sale workflow gets the same answer for them.
    """
    if not isinstance(payload, list):
        raise ValidationError("Request body must be a JSON array of sale lines")

    lines: list[SaleLineRequest] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValidationError(f"Line {index} must be an object")
        if "productId" not in item or "quantitySold" not in item:
            raise ValidationError(f"Line {index}: productId and quantitySold required")
        product_id = _coerce_int(f"Line {index}: productId", item["productId"])
        quantity_sold = _coerce_int(f"Line {index}: quantitySold", item["quantitySold"])
        if not 1 <= product_id <= MAX_DB_INT:
            raise ValidationError(f"Line {index}: productId must be between 1 and {MAX_DB_INT}")
        if quantity_sold > MAX_DB_INT:
            raise ValidationError(f"Line {index}: quantitySold cannot exceed {MAX_DB_INT}")
        lines.append(SaleLineRequest(product_id=product_id, quantity_sold=quantity_sold))
    return lines
