# Overview: Service-layer operations for item categories.

from __future__ import annotations

from ..models import Category
from ..validation import (
    ModelValidationPolicy,
    ConflictError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_master_record,
)
from .record_store import get_record_store
from .records import CategoryRecord, decode_all
from .results import ActionResult, NotFoundError, service_action

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "description", "status"},
    required_on_create={"code", "name"},
)


def list_categories(*, status: str | None = None, search: str | None = None) -> list[CategoryRecord]:
    categories = decode_all("categories", get_record_store().select("categories", {"status": status} if status else None))
    if search:
        needle = search.strip().lower()
        categories = [c for c in categories if needle in c.name.lower() or needle in c.code.lower()]
    return categories


def _ensure_code_free(code: str, *, exclude_id: int | None = None) -> None:
    for row in get_record_store().select("categories", {"code": code}):
        if row["id"] != exclude_id:
            raise ConflictError("Category code already exists.")


@service_action("category")
def create_category(payload: dict) -> ActionResult:
    patch = validate_payload(
        model=Category,
        payload=drop_blank_fields(payload or {}),
        policy=CATEGORY_POLICY,
        partial=False,
    )
    enforce_rules_master_record(patch)
    _ensure_code_free(patch["code"])
    patch.setdefault("status", "active")
    patch.setdefault("description", "")

    category = CategoryRecord.from_row(get_record_store().insert("categories", patch))
    return ActionResult.ok("Category added.", category, key="category", created=True)


@service_action("category")
def update_category(category_id: int, payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(model=Category, payload=data, policy=CATEGORY_POLICY, partial=True)
    enforce_rules_master_record(patch)

    store = get_record_store()
    if store.get("categories", category_id) is None:
        raise NotFoundError(f"Category {category_id} not found")
    if "code" in patch:
        _ensure_code_free(patch["code"], exclude_id=category_id)

    row = store.update("categories", category_id, patch)
    if row is None:
        raise NotFoundError(f"Category {category_id} not found")
    return ActionResult.ok("Category updated.", CategoryRecord.from_row(row), key="category")


@service_action()
def delete_category(category_id: int) -> ActionResult:
    # Items keep the category name as plain text; nothing cascades
    if not get_record_store().delete("categories", category_id):
        raise NotFoundError(f"Category {category_id} not found")
    return ActionResult.ok("Category deleted.")
