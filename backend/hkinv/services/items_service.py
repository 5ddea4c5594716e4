# backend/hkinv/services/items_service.py
"""
Items Service

Items are the stocked housekeeping goods. Stock itself is owned by the ledger:
- create_item takes the initial current_stock as the opening balance
- update_item routes a current_stock edit through ledger_service.set_stock_level
- delete_item hard-deletes only items no transaction or depreciation points at;
  referenced items are deactivated instead
"""
from __future__ import annotations

from ..models import Item
from ..validation import (
    ModelValidationPolicy,
    ConflictError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_item,
)
from .ledger_service import set_stock_level
from .record_store import get_record_store
from .records import ItemRecord, decode_all
from .results import ActionResult, NotFoundError, service_action

ITEM_FIELDS = {
    "code",
    "name",
    "category",
    "description",
    "unit",
    "min_stock",
    "current_stock",
    "location",
    "supplier_id",
    "price",
    "status",
    "image_url",
}

ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=ITEM_FIELDS,
    required_on_create={"code", "name", "unit"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(writable_fields=ITEM_FIELDS)


def list_items(*, status: str | None = None, category: str | None = None, search: str | None = None) -> list[ItemRecord]:
    filters = {}
    if status:
        filters["status"] = status
    if category:
        filters["category"] = category
    items = decode_all("items", get_record_store().select("items", filters))
    if search:
        needle = search.strip().lower()
        items = [i for i in items if needle in i.name.lower() or needle in i.code.lower()]
    return items


def get_item(item_id: int) -> ItemRecord | None:
    row = get_record_store().get("items", item_id)
    return ItemRecord.from_row(row) if row else None


def _ensure_code_free(code: str, *, exclude_id: int | None = None) -> None:
    for row in get_record_store().select("items", {"code": code}):
        if row["id"] != exclude_id:
            raise ConflictError("Item code already exists.")


def _ensure_supplier(supplier_id: int | None) -> None:
    if supplier_id is not None and get_record_store().get("suppliers", supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")


@service_action("item")
def create_item(payload: dict) -> ActionResult:
    patch = validate_payload(
        model=Item,
        payload=drop_blank_fields(payload or {}),
        policy=ITEM_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_item(patch)
    _ensure_code_free(patch["code"])
    _ensure_supplier(patch.get("supplier_id"))

    patch.setdefault("status", "active")
    patch.setdefault("current_stock", 0)
    patch.setdefault("min_stock", 0)
    patch.setdefault("price", 0)
    patch["opening_stock"] = patch["current_stock"]

    item = ItemRecord.from_row(get_record_store().insert("items", patch))
    return ActionResult.ok("Item added.", item, key="item", created=True)


@service_action("item")
def update_item(item_id: int, payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(model=Item, payload=data, policy=ITEM_UPDATE_POLICY, partial=True)
    enforce_rules_item(patch)

    store = get_record_store()
    current = store.get("items", item_id)
    if current is None:
        raise NotFoundError(f"Item {item_id} not found")
    item = ItemRecord.from_row(current)

    if "code" in patch and patch["code"] != item.code:
        _ensure_code_free(patch["code"], exclude_id=item_id)
    if "supplier_id" in patch:
        _ensure_supplier(patch["supplier_id"])

    new_level = patch.pop("current_stock", None)
    if patch:
        row = store.update("items", item_id, patch)
        if row is None:
            raise NotFoundError(f"Item {item_id} not found")
        item = ItemRecord.from_row(row)

    if new_level is not None and new_level != item.current_stock:
        item = set_stock_level(item_id, new_level, store=store)

    return ActionResult.ok("Item updated.", item, key="item")


@service_action("item")
def delete_item(item_id: int) -> ActionResult:
    store = get_record_store()
    current = store.get("items", item_id)
    if current is None:
        raise NotFoundError(f"Item {item_id} not found")

    referenced = store.select("transactions", {"item_id": item_id}) or store.select(
        "depreciations", {"item_id": item_id}
    )
    if referenced:
        # Soft-delete only: keep the ledger history resolvable
        row = store.update("items", item_id, {"status": "inactive"})
        return ActionResult.ok(
            "Item has transactions; it was deactivated instead of deleted.",
            ItemRecord.from_row(row),
            key="item",
        )

    store.delete("items", item_id)
    return ActionResult.ok("Item deleted.")
