# Overview: Record-level persistence collaborator used by every service.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from flask import current_app
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import (
    User,
    Category,
    Supplier,
    Item,
    Transaction,
    Depreciation,
    CostItemDefinition,
    LaundryLogEntry,
)
from ..signals import record_changed
from ..validation import ConflictError
from .concurrency import run_with_retry
from .results import PersistenceError
from hkinv.time_utils import utcnow

"""
Record store contract (authoritative)

- A key-addressable record store: rows in, rows out. Rows are plain dicts
  (the model's to_dict() shape); callers decode them with services.records.
- select() supports equality filters only and always orders by id ascending.
- Every mutating call is its own unit of work: it commits before returning.
- increment() is atomic at the database level (UPDATE ... SET f = f + delta).
- Failures surface as PersistenceError; unique-key collisions as ConflictError.
- A successful mutation publishes record_changed(table, action=..., record_id=...).
"""

TABLES = {
    "users": User,
    "categories": Category,
    "suppliers": Supplier,
    "items": Item,
    "transactions": Transaction,
    "depreciations": Depreciation,
    "cost_items": CostItemDefinition,
    "laundry_logs": LaundryLogEntry,
}


class RecordStore(ABC):
    @abstractmethod
    def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict]:
        ...

    @abstractmethod
    def get(self, table: str, record_id: int) -> dict | None:
        ...

    @abstractmethod
    def insert(self, table: str, values: dict[str, Any]) -> dict:
        ...

    @abstractmethod
    def update(self, table: str, record_id: int, values: dict[str, Any]) -> dict | None:
        ...

    @abstractmethod
    def delete(self, table: str, record_id: int) -> bool:
        ...

    @abstractmethod
    def increment(self, table: str, record_id: int, field: str, delta: int) -> dict | None:
        ...


class SqlAlchemyRecordStore(RecordStore):
    """RecordStore over the Flask-SQLAlchemy session."""

    def _model(self, table: str):
        model = TABLES.get(table)
        if model is None:
            raise PersistenceError(f"Unknown table: {table}")
        return model

    def _run(self, op, what: str):
        try:
            return run_with_retry(op)
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError(f"{what} violates a uniqueness constraint") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Record store failure during %s", what)
            raise PersistenceError(f"{what} failed") from e

    def _touch(self, model, values: dict[str, Any]) -> dict[str, Any]:
        if "updated_at" in model.__table__.columns and "updated_at" not in values:
            values = {**values, "updated_at": utcnow()}
        return values

    def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict]:
        model = self._model(table)

        def _op():
            q = db.session.query(model).populate_existing()
            if filters:
                q = q.filter_by(**filters)
            return [r.to_dict() for r in q.order_by(model.id.asc()).all()]

        return self._run(_op, f"select {table}")

    def get(self, table: str, record_id: int) -> dict | None:
        model = self._model(table)

        def _op():
            obj = db.session.get(model, record_id, populate_existing=True)
            return obj.to_dict() if obj else None

        return self._run(_op, f"get {table}/{record_id}")

    def insert(self, table: str, values: dict[str, Any]) -> dict:
        model = self._model(table)

        def _op():
            obj = model(**values)
            db.session.add(obj)
            db.session.commit()
            return obj.to_dict()

        row = self._run(_op, f"insert {table}")
        record_changed.send(table, action="insert", record_id=row["id"])
        return row

    def update(self, table: str, record_id: int, values: dict[str, Any]) -> dict | None:
        model = self._model(table)
        values = self._touch(model, values)

        def _op():
            obj = db.session.get(model, record_id)
            if obj is None:
                return None
            for k, v in values.items():
                setattr(obj, k, v)
            db.session.commit()
            return obj.to_dict()

        row = self._run(_op, f"update {table}/{record_id}")
        if row is not None:
            record_changed.send(table, action="update", record_id=record_id)
        return row

    def delete(self, table: str, record_id: int) -> bool:
        model = self._model(table)

        def _op():
            obj = db.session.get(model, record_id)
            if obj is None:
                return False
            db.session.delete(obj)
            db.session.commit()
            return True

        deleted = self._run(_op, f"delete {table}/{record_id}")
        if deleted:
            record_changed.send(table, action="delete", record_id=record_id)
        return deleted

    def increment(self, table: str, record_id: int, field: str, delta: int) -> dict | None:
        model = self._model(table)
        column = getattr(model, field, None)
        if column is None:
            raise PersistenceError(f"Unknown field: {table}.{field}")
        values = self._touch(model, {field: column + delta})

        def _op():
            result = db.session.execute(
                sa_update(model).where(model.id == record_id).values(values)
            )
            db.session.commit()
            if result.rowcount == 0:
                return None
            obj = db.session.get(model, record_id)
            return obj.to_dict() if obj else None

        row = self._run(_op, f"increment {table}/{record_id}.{field}")
        if row is not None:
            record_changed.send(table, action="update", record_id=record_id)
        return row


def get_record_store() -> RecordStore:
    return current_app.extensions["hkinv.record_store"]
