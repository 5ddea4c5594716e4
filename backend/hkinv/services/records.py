from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any

from ..validation import ValidationError
from ..models import (
    USER_ROLES,
    RECORD_STATUSES,
    TRANSACTION_TYPES,
    TRANSACTION_STATUSES,
    DEPRECIATION_STATUSES,
)
from hkinv.time_utils import parse_iso_date, parse_iso_datetime, to_iso_date, to_utc_z

"""
Typed decode of rows returned by the record store.

Rows cross a process boundary as plain JSON-like dicts. Nothing downstream
(ledger arithmetic, reports, CSV) touches a raw row: it is decoded here first,
and a row with the wrong shape fails with ValidationError instead of leaking
None or strings into the arithmetic.
"""


class _Row:
    def __init__(self, table: str, row: Any):
        if not isinstance(row, dict):
            raise ValidationError(f"{table}: row must be an object, got {type(row).__name__}")
        self.table = table
        self.row = row

    def _fail(self, key: str, expected: str) -> ValidationError:
        return ValidationError(f"{self.table}.{key}: expected {expected}, got {self.row.get(key)!r}")

    def int(self, key: str) -> int:
        value = self.row.get(key)
        if isinstance(value, bool) or value is None:
            raise self._fail(key, "integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isascii() and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise self._fail(key, "integer")

    def opt_int(self, key: str) -> int | None:
        if self.row.get(key) in (None, ""):
            return None
        return self.int(key)

    def text(self, key: str) -> str:
        value = self.row.get(key)
        if not isinstance(value, str):
            raise self._fail(key, "string")
        return value

    def opt_text(self, key: str, default: str | None = None) -> str | None:
        value = self.row.get(key)
        if value is None:
            return default
        if not isinstance(value, str):
            raise self._fail(key, "string")
        return value

    def choice(self, key: str, choices: tuple[str, ...]) -> str:
        value = self.text(key)
        if value not in choices:
            raise self._fail(key, f"one of {', '.join(choices)}")
        return value

    def opt_date(self, key: str) -> date | None:
        value = self.row.get(key)
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return parse_iso_date(str(value))
        except ValueError:
            raise self._fail(key, "date")

    def date(self, key: str) -> date:
        value = self.opt_date(key)
        if value is None:
            raise self._fail(key, "date")
        return value

    def opt_datetime(self, key: str) -> datetime | None:
        value = self.row.get(key)
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        try:
            return parse_iso_datetime(str(value))
        except ValueError:
            raise self._fail(key, "datetime")


class _Record:
    """to_dict() gives back the wire shape the row came in."""

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = to_utc_z(value)
            elif isinstance(value, date):
                value = to_iso_date(value)
            out[f.name] = value
        return out


@dataclass(frozen=True)
class UserRecord(_Record):
    id: int
    username: str
    name: str
    email: str
    role: str
    status: str
    last_login: datetime | None
    avatar_url: str | None

    @classmethod
    def from_row(cls, row: Any) -> "UserRecord":
        r = _Row("users", row)
        return cls(
            id=r.int("id"),
            username=r.text("username"),
            name=r.text("name"),
            email=r.text("email"),
            role=r.choice("role", USER_ROLES),
            status=r.choice("status", RECORD_STATUSES),
            last_login=r.opt_datetime("last_login"),
            avatar_url=r.opt_text("avatar_url"),
        )


@dataclass(frozen=True)
class CategoryRecord(_Record):
    id: int
    code: str
    name: str
    description: str
    status: str
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: Any) -> "CategoryRecord":
        r = _Row("categories", row)
        return cls(
            id=r.int("id"),
            code=r.text("code"),
            name=r.text("name"),
            description=r.opt_text("description", ""),
            status=r.choice("status", RECORD_STATUSES),
            created_at=r.opt_datetime("created_at"),
            updated_at=r.opt_datetime("updated_at"),
        )


@dataclass(frozen=True)
class SupplierRecord(_Record):
    id: int
    code: str
    name: str
    contact: str | None
    phone: str | None
    email: str | None
    address: str | None
    status: str
    created_at: datetime | None

    @classmethod
    def from_row(cls, row: Any) -> "SupplierRecord":
        r = _Row("suppliers", row)
        return cls(
            id=r.int("id"),
            code=r.text("code"),
            name=r.text("name"),
            contact=r.opt_text("contact"),
            phone=r.opt_text("phone"),
            email=r.opt_text("email"),
            address=r.opt_text("address"),
            status=r.choice("status", RECORD_STATUSES),
            created_at=r.opt_datetime("created_at"),
        )


@dataclass(frozen=True)
class ItemRecord(_Record):
    id: int
    code: str
    name: str
    category: str | None
    description: str
    unit: str
    min_stock: int
    current_stock: int
    opening_stock: int
    location: str | None
    supplier_id: int | None
    price: int
    status: str
    image_url: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: Any) -> "ItemRecord":
        r = _Row("items", row)
        return cls(
            id=r.int("id"),
            code=r.text("code"),
            name=r.text("name"),
            category=r.opt_text("category"),
            description=r.opt_text("description", ""),
            unit=r.text("unit"),
            min_stock=r.int("min_stock"),
            current_stock=r.int("current_stock"),
            opening_stock=r.opt_int("opening_stock") or 0,
            location=r.opt_text("location"),
            supplier_id=r.opt_int("supplier_id"),
            price=r.int("price"),
            status=r.choice("status", RECORD_STATUSES),
            image_url=r.opt_text("image_url"),
            created_at=r.opt_datetime("created_at"),
            updated_at=r.opt_datetime("updated_at"),
        )


@dataclass(frozen=True)
class TransactionRecord(_Record):
    id: int
    type: str
    item_id: int
    quantity: int
    user_id: int
    supplier_id: int | None
    borrower_id: str | None
    notes: str
    status: str
    date: date
    due_date: date | None
    return_date: date | None

    @classmethod
    def from_row(cls, row: Any) -> "TransactionRecord":
        r = _Row("transactions", row)
        return cls(
            id=r.int("id"),
            type=r.choice("type", TRANSACTION_TYPES),
            item_id=r.int("item_id"),
            quantity=r.int("quantity"),
            user_id=r.int("user_id"),
            supplier_id=r.opt_int("supplier_id"),
            borrower_id=r.opt_text("borrower_id"),
            notes=r.opt_text("notes", ""),
            status=r.choice("status", TRANSACTION_STATUSES),
            date=r.date("date"),
            due_date=r.opt_date("due_date"),
            return_date=r.opt_date("return_date"),
        )


@dataclass(frozen=True)
class DepreciationRecord(_Record):
    id: int
    item_id: int
    quantity: int
    date: date
    reason: str
    user_id: int
    status: str

    @classmethod
    def from_row(cls, row: Any) -> "DepreciationRecord":
        r = _Row("depreciations", row)
        return cls(
            id=r.int("id"),
            item_id=r.int("item_id"),
            quantity=r.int("quantity"),
            date=r.date("date"),
            reason=r.opt_text("reason", ""),
            user_id=r.int("user_id"),
            status=r.choice("status", DEPRECIATION_STATUSES),
        )


@dataclass(frozen=True)
class CostItemRecord(_Record):
    id: int
    name: str
    price: int

    @classmethod
    def from_row(cls, row: Any) -> "CostItemRecord":
        r = _Row("cost_items", row)
        return cls(id=r.int("id"), name=r.text("name"), price=r.int("price"))


@dataclass(frozen=True)
class LaundryLogRecord(_Record):
    id: int
    date: date
    item_id: int
    out_quantity: int
    in_quantity: int
    pending_quantity: int
    returned_quantity: int
    returned_date: date | None
    returned_image_url: str | None

    @classmethod
    def from_row(cls, row: Any) -> "LaundryLogRecord":
        r = _Row("laundry_logs", row)
        return cls(
            id=r.int("id"),
            date=r.date("date"),
            item_id=r.int("item_id"),
            out_quantity=r.opt_int("out_quantity") or 0,
            in_quantity=r.opt_int("in_quantity") or 0,
            pending_quantity=r.opt_int("pending_quantity") or 0,
            returned_quantity=r.opt_int("returned_quantity") or 0,
            returned_date=r.opt_date("returned_date"),
            returned_image_url=r.opt_text("returned_image_url"),
        )


RECORD_TYPES = {
    "users": UserRecord,
    "categories": CategoryRecord,
    "suppliers": SupplierRecord,
    "items": ItemRecord,
    "transactions": TransactionRecord,
    "depreciations": DepreciationRecord,
    "cost_items": CostItemRecord,
    "laundry_logs": LaundryLogRecord,
}


def decode(table: str, row: Any):
    return RECORD_TYPES[table].from_row(row)


def decode_all(table: str, rows: list) -> list:
    return [decode(table, row) for row in rows]
