# Overview: Service-layer operations for the stock ledger; every movement records a transaction and moves stock.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..models import Transaction
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_transaction,
)
from .concurrency import item_locks
from .record_store import RecordStore, get_record_store
from .records import ItemRecord, TransactionRecord, DepreciationRecord, decode_all
from .results import ActionResult, NotFoundError, PersistenceError, service_action
from hkinv.time_utils import today
"""
Stock Ledger Invariants (authoritative)

Sign of a movement:
- in, return   -> +quantity
- out, borrow  -> -quantity
- any other    -> no stock effect

Recording:
- item_id, quantity and user_id are required; quantity is a positive integer.
  A rejected request writes nothing.
- The transaction row is written first, then the item's stock is incremented
  by sign * quantity. The increment is atomic in the store and serialized per
  item in this process.
- If the stock write fails the transaction row stays. The inconsistency is
  logged and reported as a failed result carrying the transaction; the
  reconciliation job repairs it.
- Stock only moves when a transaction is created (or, under the "reverse"
  policy, edited/deleted). Status changes alone never move stock.

Baseline:
- current_stock == opening_stock + SUM(signed transactions) - SUM(completed depreciations)
- Under the "leave" policy an edited/deleted transaction keeps its stock
  effect; opening_stock absorbs it so the equation still holds.
"""

STOCK_SIGNS = {"in": 1, "return": 1, "out": -1, "borrow": -1}

STOCK_POLICIES = ("leave", "reverse")

TRANSACTION_FIELDS = {
    "type",
    "item_id",
    "quantity",
    "user_id",
    "supplier_id",
    "borrower_id",
    "notes",
    "status",
    "date",
    "due_date",
    "return_date",
}

TRANSACTION_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=TRANSACTION_FIELDS,
    required_on_create={"item_id", "quantity", "user_id"},
)

TRANSACTION_UPDATE_POLICY = ModelValidationPolicy(writable_fields=TRANSACTION_FIELDS)


def sign_for(tx_type: str) -> int:
    return STOCK_SIGNS.get(tx_type, 0)


def stock_policy() -> str:
    policy = current_app.config.get("STOCK_REVERSAL_POLICY", "leave")
    if policy not in STOCK_POLICIES:
        raise ValueError(f"STOCK_REVERSAL_POLICY must be one of {STOCK_POLICIES}, got {policy!r}")
    return policy


def default_status(tx_type: str) -> str:
    # A borrow stays open until the item comes back
    return "pending" if tx_type == "borrow" else "completed"


def require_item(store: RecordStore, item_id: int) -> ItemRecord:
    row = store.get("items", item_id)
    if row is None:
        raise NotFoundError(f"Item {item_id} not found")
    return ItemRecord.from_row(row)


def require_user(store: RecordStore, user_id: int) -> None:
    if store.get("users", user_id) is None:
        raise NotFoundError(f"User {user_id} not found")


def require_supplier(store: RecordStore, supplier_id: int | None) -> None:
    if supplier_id is not None and store.get("suppliers", supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")


def apply_stock_delta(item_id: int, delta: int, *, store: RecordStore | None = None) -> ItemRecord:
    """Move an item's current stock by delta. Raises NotFoundError / PersistenceError."""
    store = store or get_record_store()
    if delta == 0:
        return require_item(store, item_id)
    with item_locks.lock_for(item_id):
        row = store.increment("items", item_id, "current_stock", delta)
    if row is None:
        raise NotFoundError(f"Item {item_id} not found")
    return ItemRecord.from_row(row)


def _shift_baseline(store: RecordStore, item_id: int, delta: int) -> None:
    if delta == 0:
        return
    with item_locks.lock_for(item_id):
        row = store.increment("items", item_id, "opening_stock", delta)
    if row is None:
        # Item is gone; nothing left to keep consistent
        current_app.logger.warning("Baseline shift skipped: item %s no longer exists", item_id)


def move_stock_effect(
    *,
    old_item_id: int,
    old_delta: int,
    new_item_id: int,
    new_delta: int,
    store: RecordStore | None = None,
) -> None:
    """
    Replace one stock effect with another according to STOCK_REVERSAL_POLICY.

    Deleting a movement is new_delta=0; editing it passes both effects.
    """
    store = store or get_record_store()
    if old_item_id == new_item_id and old_delta == new_delta:
        return

    if stock_policy() == "reverse":
        if old_item_id == new_item_id:
            apply_stock_delta(old_item_id, new_delta - old_delta, store=store)
        else:
            apply_stock_delta(old_item_id, -old_delta, store=store)
            apply_stock_delta(new_item_id, new_delta, store=store)
        return

    if old_item_id == new_item_id:
        _shift_baseline(store, old_item_id, old_delta - new_delta)
    else:
        _shift_baseline(store, old_item_id, old_delta)
        _shift_baseline(store, new_item_id, -new_delta)


def set_stock_level(item_id: int, new_level: int, *, store: RecordStore | None = None) -> ItemRecord:
    """
    Administrative stock edit (stock take). Sets current_stock outright and
    re-derives opening_stock so the ledger equation keeps holding.
    """
    if new_level < 0:
        raise ValidationError("current_stock must be >= 0")
    store = store or get_record_store()
    with item_locks.lock_for(item_id):
        item = require_item(store, item_id)
        row = store.update(
            "items",
            item_id,
            {
                "current_stock": new_level,
                "opening_stock": item.opening_stock + (new_level - item.current_stock),
            },
        )
    if row is None:
        raise NotFoundError(f"Item {item_id} not found")
    return ItemRecord.from_row(row)


def list_transactions(
    *,
    tx_type: str | None = None,
    item_id: int | None = None,
    status: str | None = None,
) -> list[TransactionRecord]:
    filters = {}
    if tx_type:
        filters["type"] = tx_type
    if item_id is not None:
        filters["item_id"] = item_id
    if status:
        filters["status"] = status
    return decode_all("transactions", get_record_store().select("transactions", filters))


def get_transaction(tx_id: int) -> TransactionRecord | None:
    row = get_record_store().get("transactions", tx_id)
    return TransactionRecord.from_row(row) if row else None


@service_action("transaction")
def record_transaction(payload: dict, *, user_id: int | None = None) -> ActionResult:
    """
    Record an inventory movement and apply its stock effect.

    user_id overrides whatever the payload says (the acting user).
    """
    store = get_record_store()

    data = drop_blank_fields(payload or {})
    if user_id is not None:
        data["user_id"] = user_id
    data.setdefault("type", "in")

    patch = validate_payload(
        model=Transaction,
        payload=data,
        policy=TRANSACTION_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_transaction(patch)
    patch.setdefault("status", default_status(patch["type"]))
    patch.setdefault("date", today())

    require_item(store, patch["item_id"])
    require_user(store, patch["user_id"])
    require_supplier(store, patch.get("supplier_id"))

    tx = TransactionRecord.from_row(store.insert("transactions", patch))

    delta = sign_for(tx.type) * tx.quantity
    if delta:
        try:
            apply_stock_delta(tx.item_id, delta, store=store)
        except (PersistenceError, NotFoundError) as e:
            current_app.logger.error(
                "Transaction %s recorded but stock update of item %s by %+d failed: %s",
                tx.id, tx.item_id, delta, e,
            )
            return ActionResult.fail(
                PersistenceError(f"Transaction {tx.id} recorded but stock update failed"),
                payload=tx,
                key="transaction",
            )

    return ActionResult.ok("Transaction recorded.", tx, key="transaction", created=True)


@service_action("transaction")
def update_transaction(tx_id: int, payload: dict) -> ActionResult:
    """Partial update. Empty fields keep their stored value."""
    store = get_record_store()

    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(
        model=Transaction,
        payload=data,
        policy=TRANSACTION_UPDATE_POLICY,
        partial=True,
    )
    enforce_rules_transaction(patch)

    current = store.get("transactions", tx_id)
    if current is None:
        raise NotFoundError(f"Transaction {tx_id} not found")
    old = TransactionRecord.from_row(current)

    if not patch:
        return ActionResult.ok("Nothing to update.", old, key="transaction")

    merged_date = patch.get("date", old.date)
    merged_due = patch.get("due_date", old.due_date)
    if merged_due is not None and merged_due < merged_date:
        raise ValidationError("due_date cannot be before date")

    if "item_id" in patch and patch["item_id"] != old.item_id:
        require_item(store, patch["item_id"])
    if "user_id" in patch and patch["user_id"] != old.user_id:
        require_user(store, patch["user_id"])
    if patch.get("supplier_id") is not None:
        require_supplier(store, patch["supplier_id"])

    row = store.update("transactions", tx_id, patch)
    if row is None:
        raise NotFoundError(f"Transaction {tx_id} not found")
    new = TransactionRecord.from_row(row)

    try:
        move_stock_effect(
            old_item_id=old.item_id,
            old_delta=sign_for(old.type) * old.quantity,
            new_item_id=new.item_id,
            new_delta=sign_for(new.type) * new.quantity,
            store=store,
        )
    except (PersistenceError, NotFoundError) as e:
        current_app.logger.error("Transaction %s updated but stock adjustment failed: %s", tx_id, e)
        return ActionResult.fail(
            PersistenceError(f"Transaction {tx_id} updated but stock adjustment failed"),
            payload=new,
            key="transaction",
        )

    return ActionResult.ok("Transaction updated.", new, key="transaction")


@service_action()
def delete_transaction(tx_id: int) -> ActionResult:
    store = get_record_store()
    if not tx_id:
        raise ValidationError("Invalid transaction id")

    current = store.get("transactions", tx_id)
    if current is None:
        raise NotFoundError(f"Transaction {tx_id} not found")
    old = TransactionRecord.from_row(current)

    if not store.delete("transactions", tx_id):
        raise NotFoundError(f"Transaction {tx_id} not found")

    try:
        move_stock_effect(
            old_item_id=old.item_id,
            old_delta=sign_for(old.type) * old.quantity,
            new_item_id=old.item_id,
            new_delta=0,
            store=store,
        )
    except (PersistenceError, NotFoundError) as e:
        current_app.logger.error("Transaction %s deleted but stock adjustment failed: %s", tx_id, e)
        return ActionResult.fail(PersistenceError(f"Transaction {tx_id} deleted but stock adjustment failed"))

    return ActionResult.ok("Transaction deleted.")


# -----------------------------------------------------------------------------
# Reconciliation
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StockDrift:
    item_id: int
    code: str
    current_stock: int
    expected_stock: int

    @property
    def drift(self) -> int:
        return self.current_stock - self.expected_stock

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "code": self.code,
            "current_stock": self.current_stock,
            "expected_stock": self.expected_stock,
            "drift": self.drift,
        }


def expected_stock_levels(
    items: Iterable[ItemRecord],
    transactions: Iterable[TransactionRecord],
    depreciations: Iterable[DepreciationRecord] = (),
) -> dict[int, int]:
    """opening_stock + signed movements - completed write-offs, per item id."""
    expected = {item.id: item.opening_stock for item in items}
    for tx in transactions:
        if tx.item_id in expected:
            expected[tx.item_id] += sign_for(tx.type) * tx.quantity
    for dep in depreciations:
        if dep.item_id in expected and dep.status == "completed":
            expected[dep.item_id] -= dep.quantity
    return expected


@service_action("drift")
def reconcile_stock(*, fix: bool = False) -> ActionResult:
    """
    Recompute every item's stock from the ledger and report differences.
    With fix=True, current_stock is moved to the expected level.
    """
    store = get_record_store()
    items = decode_all("items", store.select("items"))
    expected = expected_stock_levels(
        items,
        decode_all("transactions", store.select("transactions")),
        decode_all("depreciations", store.select("depreciations")),
    )

    drifts = [
        StockDrift(item.id, item.code, item.current_stock, expected[item.id])
        for item in items
        if item.current_stock != expected[item.id]
    ]
    for d in drifts:
        current_app.logger.warning(
            "Stock drift on item %s (%s): current=%s expected=%s",
            d.item_id, d.code, d.current_stock, d.expected_stock,
        )

    if fix:
        for d in drifts:
            apply_stock_delta(d.item_id, d.expected_stock - d.current_stock, store=store)
        message = f"Repaired {len(drifts)} item(s)." if drifts else "Stock is consistent."
    else:
        message = f"{len(drifts)} item(s) out of balance." if drifts else "Stock is consistent."

    return ActionResult.ok(message, drifts, key="drift")
