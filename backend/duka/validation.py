from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from duka.errors import ValidationError
from duka.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

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


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_decimal(key: str, value: Any) -> Decimal:
    """Parse a JSON number or numeric string into a finite Decimal."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{key} must be a number")
    try:
        # str() first so floats keep their shortest repr (0.1 -> "0.1")
        dec = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    return dec


def money_to_cents(key: str, value: Any, *, max_cents: int | None = MAX_PRICE_CENTS) -> int:
    """
    Decimal money amount -> integer cents, rounded half-up to 2 places.

    max_cents=None lifts the cap (sale totals).
    """
    amount = coerce_decimal(key, value)
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    cents = int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if max_cents is not None and cents > max_cents:
        raise ValidationError(f"{key} cannot exceed {max_cents / 100:,.2f}")
    return cents


def cents_to_money(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float((Decimal(cents) / 100).quantize(CENT))


def percent_to_bps(key: str, value: Any) -> int:
    """Percentage in [0, 100] -> basis points (1% == 100 bps)."""
    if value is None:
        return 0
    pct = coerce_decimal(key, value)
    if pct < 0 or pct > 100:
        raise ValidationError(f"{key} must be between 0 and 100")
    return int((pct * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def bps_to_percent(bps: int | None) -> float:
    return float(Decimal(bps or 0) / 100)


def normalize_money_fields(payload: dict, fields: dict[str, str]) -> dict:
    """
    Rewrite decimal money keys to their cents columns.

    ``fields`` maps the API key (e.g. "selling_price") to the column key
    (e.g. "selling_price_cents"). Other keys pass through untouched.
    """
    out = {}
    for k, v in payload.items():
        if k in fields:
            out[fields[k]] = None if v is None else money_to_cents(k, v)
        else:
            out[k] = v
    return out


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
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
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict, *, vat_rates: tuple[int, ...] = ()) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("purchase_price_cents", "selling_price_cents"):
        if key in patch and patch[key] is not None:
            if patch[key] < 0:
                raise ValidationError(f"{key.replace('_cents', '')} must be >= 0")
            if patch[key] > MAX_PRICE_CENTS:
                raise ValidationError(f"{key.replace('_cents', '')} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")

    if "vat" in patch:
        vat = patch["vat"]
        if vat < 0:
            raise ValidationError("vat must be >= 0")
        if vat_rates and vat not in vat_rates:
            allowed = ", ".join(str(r) for r in vat_rates)
            raise ValidationError(f"vat must be one of: {allowed}")

    if "stock_level" in patch and patch["stock_level"] < 0:
        raise ValidationError("stock_level must be >= 0")


def enforce_rules_sale(*, quantity: Any, payment_method: Any, payment_methods: tuple[str, ...]) -> tuple[int, str]:
    """
    Validate sale inputs that do not need storage.

    Returns the normalized (quantity, payment_method) pair; payment methods are
    matched case-insensitively and returned in their configured spelling.
    """
    qty = coerce_int("quantity", quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0")

    if payment_method is None or str(payment_method).strip() == "":
        raise ValidationError("payment_method is required")

    method = str(payment_method).strip()
    if payment_methods:
        by_lower = {m.lower(): m for m in payment_methods}
        if method.lower() not in by_lower:
            raise ValidationError(
                f"payment_method must be one of: {', '.join(payment_methods)}",
                details={"payment_method": method},
            )
        method = by_lower[method.lower()]

    return qty, method
