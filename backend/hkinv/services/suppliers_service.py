# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from ..models import Supplier
from ..validation import (
    ModelValidationPolicy,
    ConflictError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_master_record,
)
from .record_store import get_record_store
from .records import SupplierRecord, decode_all
from .results import ActionResult, NotFoundError, service_action

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "contact", "phone", "email", "address", "status"},
    required_on_create={"code", "name"},
)


def list_suppliers(*, status: str | None = None) -> list[SupplierRecord]:
    return decode_all("suppliers", get_record_store().select("suppliers", {"status": status} if status else None))


def _ensure_code_free(code: str, *, exclude_id: int | None = None) -> None:
    for row in get_record_store().select("suppliers", {"code": code}):
        if row["id"] != exclude_id:
            raise ConflictError("Supplier code already exists.")


@service_action("supplier")
def create_supplier(payload: dict) -> ActionResult:
    patch = validate_payload(
        model=Supplier,
        payload=drop_blank_fields(payload or {}),
        policy=SUPPLIER_POLICY,
        partial=False,
    )
    enforce_rules_master_record(patch)
    _ensure_code_free(patch["code"])
    patch.setdefault("status", "active")

    supplier = SupplierRecord.from_row(get_record_store().insert("suppliers", patch))
    return ActionResult.ok("Supplier added.", supplier, key="supplier", created=True)


@service_action("supplier")
def update_supplier(supplier_id: int, payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(model=Supplier, payload=data, policy=SUPPLIER_POLICY, partial=True)
    enforce_rules_master_record(patch)

    store = get_record_store()
    if store.get("suppliers", supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    if "code" in patch:
        _ensure_code_free(patch["code"], exclude_id=supplier_id)

    row = store.update("suppliers", supplier_id, patch)
    if row is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return ActionResult.ok("Supplier updated.", SupplierRecord.from_row(row), key="supplier")


@service_action("supplier")
def delete_supplier(supplier_id: int) -> ActionResult:
    store = get_record_store()
    if store.get("suppliers", supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    referenced = store.select("items", {"supplier_id": supplier_id}) or store.select(
        "transactions", {"supplier_id": supplier_id}
    )
    if referenced:
        row = store.update("suppliers", supplier_id, {"status": "inactive"})
        return ActionResult.ok(
            "Supplier still supplies items; it was deactivated instead of deleted.",
            SupplierRecord.from_row(row),
            key="supplier",
        )
    store.delete("suppliers", supplier_id)
    return ActionResult.ok("Supplier deleted.")
