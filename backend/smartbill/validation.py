from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported for routes)


# Maximum unit price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")
CENTS = Decimal("0.01")

PHONE_RE = re.compile(r"^\d{10}$")
GST_LENGTH = 15


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: camelCase request keys mapped onto column keys
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    aliases: dict[str, str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: ints and plain digit strings only.

    Booleans, floats, decimals and scientific notation are rejected so a
    quantity is never silently truncated.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str) and value.strip():
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_money(value: Decimal | int | float) -> Decimal:
    """Quantize to 2 places, half-up (the stored precision of every amount)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Numeric):
        return to_money(coerce_decimal(value, col.key))

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

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
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    aliases = policy.aliases or {}
    normalized = {aliases.get(k, k): v for k, v in payload.items()}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if normalized.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in normalized.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in normalized.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    if partial and not patch:
        raise ValidationError("No fields provided for update")

    return patch


def validate_phone(phone: Any) -> str:
    if not isinstance(phone, str) or not PHONE_RE.match(phone):
        raise ValidationError("Phone number must be exactly 10 digits")
    return phone


def enforce_rules_store(patch: dict) -> None:
    if patch.get("phone") is not None:
        validate_phone(patch["phone"])
    gst = patch.get("gst_number")
    if gst is not None and len(gst) != GST_LENGTH:
        raise ValidationError(f"GST number must be exactly {GST_LENGTH} characters")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price" in patch and patch["price"] is not None:
        price = patch["price"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE}")
    if "quantity" in patch and patch["quantity"] is not None:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")


def parse_positive_int(value: Any, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    result = coerce_int(value, field)
    if result <= 0:
        raise ValidationError(f"{field} must be > 0")
    return result


def parse_discount_percent(value: Any) -> Decimal:
    """
    Overall invoice discount in percent.

    Absent, non-numeric or out-of-range values mean "no discount" rather than
    a rejected request. The result is rounded to the two places the invoice
    row stores, so totals are computed from the stored percent.
    """
    if value is None or value == "":
        return Decimal("0")
    try:
        percent = coerce_decimal(value, "discount")
    except ValidationError:
        return Decimal("0")
    if percent < 0 or percent > 100:
        return Decimal("0")
    return to_money(percent)


def money_json(value: Decimal | None) -> float | None:
    """JSON rendering of a stored amount."""
    if value is None:
        return None
    return float(to_money(value))
