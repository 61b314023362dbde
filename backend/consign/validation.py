from __future__ import annotations
from datetime import date, datetime
from consign.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Largest money amount accepted anywhere: 999,999,999 cents
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class InsufficientInventoryError(ValidationError):
    """Depleting movement requested more than the source location holds."""

    def __init__(self, message: str, *, on_hand: int, requested: int):
        super().__init__(message)
        self.on_hand = on_hand
        self.requested = requested


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode, already reversed)."""


class NotFoundError(LookupError):
    """404-level reference to a nonexistent entity."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    What a route accepts for one model:
    - writable_fields: keys a client may send; anything else is rejected
    - required_on_create: keys that must be present and non-blank when partial=False
    - extra_fields: request-only keys that are not model columns, name -> kind
      ("int", "str", "date")
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    extra_fields: dict[str, str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_int(key: str, value: Any) -> int:
    """
    Accept ints and digit strings. Floats, bools, "1e3" and "12.5" are rejected
    so a quantity or cents amount never silently truncates.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    if "e" in text.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in text:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _coerce_date(key: str, value: Any) -> date:
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")


def _coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _coerce_value(col, value: Any):
    coltype = col.type
    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)
    if isinstance(coltype, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{col.key} must be true or false")
        return value
    if isinstance(coltype, DateTime):
        return _coerce_datetime(col.key, value)
    if isinstance(coltype, Date):
        return _coerce_date(col.key, value)
    if isinstance(coltype, (String, Text)):
        return str(value).strip()
    return value


def _coerce_extra(kind: str, key: str, value: Any):
    if value is None:
        return None
    if kind == "int":
        return _coerce_int(key, value)
    if kind == "date":
        return _coerce_date(key, value)
    return str(value).strip()


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against a policy and the model's column metadata and
    return a cleaned dict holding only allowed keys.

    partial=False is create semantics: every required_on_create key must be
    present. partial=True validates only the keys that were sent.

    Raises:
        ValidationError: missing or unknown keys, wrong types, blank or
            overlong strings, or nulls in non-nullable columns
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        required = policy.required_on_create or set()
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    extras = policy.extra_fields or {}

    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in cols and key not in extras:
            raise ValidationError(f"Unknown field: {key}")

    cleaned: dict = {}
    for key, raw in payload.items():
        if key in extras:
            cleaned[key] = _coerce_extra(extras[key], key, raw)
            continue

        col = cols[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            cleaned[key] = None
            continue

        value = _coerce_value(col, raw)
        if isinstance(value, str):
            if value == "" and not col.nullable:
                raise ValidationError(f"{key} cannot be blank")
            length = getattr(col.type, "length", None)
            if length and len(value) > length:
                raise ValidationError(f"{key} exceeds max length {length}")
        cleaned[key] = value

    return cleaned


def enforce_money_cents(value: int | None, field: str, *, allow_zero: bool = True) -> None:
    """Range check for a cents amount. None is accepted (caller decides if required)."""
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_positive_quantity(value: int | None, field: str = "quantity") -> None:
    if value is None or not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{field} must be > 0")


def require_text(value: str | None, field: str) -> str:
    """Return the stripped value, or raise if it is missing or blank."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()
