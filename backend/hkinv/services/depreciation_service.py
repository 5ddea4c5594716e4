# Overview: Service-layer operations for depreciation (stock write-offs).

from __future__ import annotations

from flask import current_app

from ..models import Depreciation
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_depreciation,
)
from .ledger_service import apply_stock_delta, move_stock_effect, require_item, require_user
from .record_store import get_record_store
from .records import DepreciationRecord, decode_all
from .results import ActionResult, NotFoundError, PersistenceError, service_action
from hkinv.time_utils import today

"""
Depreciation rules:
- A completed depreciation writes stock off: effect = -quantity.
- A pending one has no stock effect until it turns completed; the write-off
  is applied at that moment.
- Edits and deletes of an already applied write-off follow
  STOCK_REVERSAL_POLICY exactly like ledger transactions.
"""

DEPRECIATION_FIELDS = {"item_id", "quantity", "date", "reason", "user_id", "status"}

DEPRECIATION_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=DEPRECIATION_FIELDS,
    required_on_create={"item_id", "quantity", "user_id"},
)

DEPRECIATION_UPDATE_POLICY = ModelValidationPolicy(writable_fields=DEPRECIATION_FIELDS)


def stock_effect(dep: DepreciationRecord) -> int:
    return -dep.quantity if dep.status == "completed" else 0


def list_depreciations(*, item_id: int | None = None, status: str | None = None) -> list[DepreciationRecord]:
    filters = {}
    if item_id is not None:
        filters["item_id"] = item_id
    if status:
        filters["status"] = status
    return decode_all("depreciations", get_record_store().select("depreciations", filters))


@service_action("depreciation")
def record_depreciation(payload: dict, *, user_id: int | None = None) -> ActionResult:
    store = get_record_store()

    data = drop_blank_fields(payload or {})
    if user_id is not None:
        data["user_id"] = user_id

    patch = validate_payload(
        model=Depreciation,
        payload=data,
        policy=DEPRECIATION_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_depreciation(patch)
    patch.setdefault("status", "completed")
    patch.setdefault("date", today())
    patch.setdefault("reason", "")

    require_item(store, patch["item_id"])
    require_user(store, patch["user_id"])

    dep = DepreciationRecord.from_row(store.insert("depreciations", patch))

    delta = stock_effect(dep)
    if delta:
        try:
            apply_stock_delta(dep.item_id, delta, store=store)
        except (PersistenceError, NotFoundError) as e:
            current_app.logger.error(
                "Depreciation %s recorded but write-off of item %s failed: %s", dep.id, dep.item_id, e
            )
            return ActionResult.fail(
                PersistenceError(f"Depreciation {dep.id} recorded but stock update failed"),
                payload=dep,
                key="depreciation",
            )

    return ActionResult.ok("Depreciation recorded.", dep, key="depreciation", created=True)


@service_action("depreciation")
def update_depreciation(dep_id: int, payload: dict) -> ActionResult:
    store = get_record_store()

    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(
        model=Depreciation,
        payload=data,
        policy=DEPRECIATION_UPDATE_POLICY,
        partial=True,
    )
    enforce_rules_depreciation(patch)

    current = store.get("depreciations", dep_id)
    if current is None:
        raise NotFoundError(f"Depreciation {dep_id} not found")
    old = DepreciationRecord.from_row(current)

    if "item_id" in patch and patch["item_id"] != old.item_id:
        require_item(store, patch["item_id"])
    if "user_id" in patch and patch["user_id"] != old.user_id:
        require_user(store, patch["user_id"])

    row = store.update("depreciations", dep_id, patch)
    if row is None:
        raise NotFoundError(f"Depreciation {dep_id} not found")
    new = DepreciationRecord.from_row(row)

    old_delta, new_delta = stock_effect(old), stock_effect(new)
    try:
        if old_delta == 0 and new_delta != 0:
            # pending -> completed: the write-off happens now
            apply_stock_delta(new.item_id, new_delta, store=store)
        else:
            move_stock_effect(
                old_item_id=old.item_id,
                old_delta=old_delta,
                new_item_id=new.item_id,
                new_delta=new_delta,
                store=store,
            )
    except (PersistenceError, NotFoundError) as e:
        current_app.logger.error("Depreciation %s updated but stock adjustment failed: %s", dep_id, e)
        return ActionResult.fail(
            PersistenceError(f"Depreciation {dep_id} updated but stock adjustment failed"),
            payload=new,
            key="depreciation",
        )

    return ActionResult.ok("Depreciation updated.", new, key="depreciation")


@service_action()
def delete_depreciation(dep_id: int) -> ActionResult:
    if not dep_id:
        raise ValidationError("Invalid depreciation id")
    store = get_record_store()
    current = store.get("depreciations", dep_id)
    if current is None:
        raise NotFoundError(f"Depreciation {dep_id} not found")
    old = DepreciationRecord.from_row(current)

    store.delete("depreciations", dep_id)

    try:
        move_stock_effect(
            old_item_id=old.item_id,
            old_delta=stock_effect(old),
            new_item_id=old.item_id,
            new_delta=0,
            store=store,
        )
    except (PersistenceError, NotFoundError) as e:
        current_app.logger.error("Depreciation %s deleted but stock adjustment failed: %s", dep_id, e)
        return ActionResult.fail(PersistenceError(f"Depreciation {dep_id} deleted but stock adjustment failed"))

    return ActionResult.ok("Depreciation deleted.")
