# Overview: Payload validation policies, column coercion and business rules for writes.

from __future__ import annotations
from datetime import date, datetime
from hkinv.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import Integer, String, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeMeta

from .models import (
    USER_ROLES,
    RECORD_STATUSES,
    TRANSACTION_TYPES,
    TRANSACTION_STATUSES,
    DEPRECIATION_STATUSES,
)


# Maximum price: Rp 9,999,999,999
MAX_PRICE = 9_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate item code)."""


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
    return {c.key: c for c in model.__mapper__.columns}


# -----------------------------------------------------------------------------
# Column coercion
# -----------------------------------------------------------------------------

def _to_int(key: str, value: Any) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number, got a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a whole number")

    text = value.strip()
    # "1e3" and "12.5" parse as floats elsewhere; quantities and Rupiah are whole
    if "e" in text.lower() or "." in text:
        raise ValidationError(f"{key} must be a whole number without decimals or exponents")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be a whole number")


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _to_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")


def _to_text(key: str, value: Any) -> str:
    return str(value).strip()


_COERCERS: tuple[tuple[type, Callable[[str, Any], Any]], ...] = (
    (Integer, _to_int),
    (DateTime, _to_datetime),
    (Date, _to_date),
    (String, _to_text),
    (Text, _to_text),
)


def _coerce_value(col, value: Any):
    if value is None:
        return None
    for coltype, coerce in _COERCERS:
        if isinstance(col.type, coltype):
            return coerce(col.key, value)
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def drop_blank_fields(payload: dict) -> dict:
    """
    No-overwrite-with-blank: updates coming from forms send every field,
    empty ones included. Unset and empty values leave the stored value alone.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {k: v for k, v in payload.items() if not _is_blank(v)}


def _check_column(key: str, col, value: Any) -> None:
    if not isinstance(value, str) or not isinstance(col.type, (String, Text)):
        return
    if value == "" and not col.nullable:
        raise ValidationError(f"{key} cannot be blank")
    limit = getattr(col.type, "length", None)
    if limit and len(value) > limit:
        raise ValidationError(f"{key} is longer than {limit} characters")


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON payload against the policy allowlist and the model's columns,
    and return the patch with every value coerced to its column type.

    partial=False: create; every required_on_create field must be present
    partial=True: update; only the provided keys are checked
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in (policy.required_on_create or ()) if _is_blank(payload.get(f)))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = _columns_by_key(model)
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    patch: dict = {}
    for key, raw in payload.items():
        col = columns[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue
        value = _coerce_value(col, raw)
        _check_column(key, col, value)
        patch[key] = value
    return patch


# -----------------------------------------------------------------------------
# Business rules
# -----------------------------------------------------------------------------

def _require_choice(patch: dict, field: str, choices: tuple[str, ...]) -> None:
    if field in patch and patch[field] is not None and patch[field] not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def _require_non_negative(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None and patch[field] < 0:
        raise ValidationError(f"{field} must be >= 0")


def _require_positive(patch: dict, field: str) -> None:
    if field in patch and (patch[field] is None or patch[field] <= 0):
        raise ValidationError(f"{field} must be a positive integer")


def enforce_rules_item(patch: dict) -> None:
    _require_non_negative(patch, "min_stock")
    _require_non_negative(patch, "current_stock")
    _require_non_negative(patch, "price")
    if patch.get("price") is not None and patch["price"] > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE}")
    _require_choice(patch, "status", RECORD_STATUSES)


def enforce_rules_master_record(patch: dict) -> None:
    _require_choice(patch, "status", RECORD_STATUSES)


def enforce_rules_user(patch: dict) -> None:
    _require_choice(patch, "role", USER_ROLES)
    _require_choice(patch, "status", RECORD_STATUSES)
    email = patch.get("email")
    if email is not None and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email must be a valid address")


def enforce_rules_transaction(patch: dict) -> None:
    # Every movement moves at least one unit
    _require_positive(patch, "quantity")
    _require_choice(patch, "type", TRANSACTION_TYPES)
    _require_choice(patch, "status", TRANSACTION_STATUSES)

    due_date = patch.get("due_date")
    tx_date = patch.get("date")
    if due_date is not None and tx_date is not None and due_date < tx_date:
        raise ValidationError("due_date cannot be before date")


def enforce_rules_depreciation(patch: dict) -> None:
    _require_positive(patch, "quantity")
    _require_choice(patch, "status", DEPRECIATION_STATUSES)


def enforce_rules_laundry_log(patch: dict) -> None:
    for field in ("out_quantity", "in_quantity", "pending_quantity", "returned_quantity"):
        _require_non_negative(patch, field)
