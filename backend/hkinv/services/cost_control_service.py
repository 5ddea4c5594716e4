# Overview: Service-layer operations for laundry cost control; log book, unit prices and the monthly report.

from __future__ import annotations

from ..models import CostItemDefinition, LaundryLogEntry, DEFAULT_COST_ITEMS
from ..validation import (
    MAX_PRICE,
    ModelValidationPolicy,
    ConflictError,
    ValidationError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_laundry_log,
)
from .csv_service import PRICE_CSV_COLUMNS, ImportReport, missing_headers, parse_csv
from .record_store import get_record_store
from .records import CostItemRecord, LaundryLogRecord, decode_all
from .reporting_service import CostRow, aggregate_costs, cost_summary, last_log_update
from .results import ActionResult, NotFoundError, service_action

COST_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price"},
    required_on_create={"name"},
)

LOG_FIELDS = {
    "date",
    "item_id",
    "out_quantity",
    "in_quantity",
    "pending_quantity",
    "returned_quantity",
    "returned_date",
    "returned_image_url",
}

LOG_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=LOG_FIELDS,
    required_on_create={"date", "item_id"},
)

LOG_UPDATE_POLICY = ModelValidationPolicy(writable_fields=LOG_FIELDS)


def list_cost_items() -> list[CostItemRecord]:
    return decode_all("cost_items", get_record_store().select("cost_items"))


def seed_cost_items() -> int:
    """Insert the default cost item definitions that are missing (by name). Returns how many were added."""
    store = get_record_store()
    existing = {row["name"] for row in store.select("cost_items")}
    added = 0
    for _, name, price in DEFAULT_COST_ITEMS:
        if name in existing:
            continue
        store.insert("cost_items", {"name": name, "price": price})
        added += 1
    return added


@service_action("cost_item")
def create_cost_item(payload: dict) -> ActionResult:
    patch = validate_payload(
        model=CostItemDefinition,
        payload=drop_blank_fields(payload or {}),
        policy=COST_ITEM_POLICY,
        partial=False,
    )
    patch["price"] = _clamp_price(patch.get("price", 0))
    store = get_record_store()
    if store.select("cost_items", {"name": patch["name"]}):
        raise ConflictError("Cost item already exists.")
    item = CostItemRecord.from_row(store.insert("cost_items", patch))
    return ActionResult.ok("Cost item added.", item, key="cost_item", created=True)


def _clamp_price(price: int) -> int:
    if price > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE}")
    return max(0, price)


@service_action("cost_item")
def update_cost_item_price(item_id: int, price) -> ActionResult:
    patch = validate_payload(
        model=CostItemDefinition,
        payload={"price": price},
        policy=COST_ITEM_POLICY,
        partial=True,
    )
    if patch.get("price") is None:
        raise ValidationError("price is required")
    row = get_record_store().update("cost_items", item_id, {"price": _clamp_price(patch["price"])})
    if row is None:
        raise NotFoundError(f"Cost item {item_id} not found")
    return ActionResult.ok("Price updated.", CostItemRecord.from_row(row), key="cost_item")


@service_action("report")
def import_prices_csv(text: str) -> ActionResult:
    """Price list upload: columns itemId,price. A bad row is reported and skipped."""
    missing = missing_headers(text or "", PRICE_CSV_COLUMNS, ["itemId", "price"])
    if missing:
        raise ValidationError("CSV must have the columns: itemId,price")

    report = ImportReport()
    for row_number, row in enumerate(parse_csv(text, PRICE_CSV_COLUMNS), start=2):
        item_id = row.get("item_id") or ""
        if not (item_id.isascii() and item_id.isdigit()):
            report.errors.append({"row": row_number, "message": f"Invalid itemId: {item_id!r}", "error": "validation_error"})
            continue
        report.add(row_number, update_cost_item_price(int(item_id), row.get("price")))

    if not report.imported:
        return ActionResult.fail(ValidationError("No valid price rows found"), payload=report, key="report")
    return ActionResult.ok(f"{len(report.imported)} price(s) updated.", report, key="report")


# -----------------------------------------------------------------------------
# Log book
# -----------------------------------------------------------------------------

def list_log_entries(*, item_id: int | None = None) -> list[LaundryLogRecord]:
    filters = {"item_id": item_id} if item_id is not None else None
    return decode_all("laundry_logs", get_record_store().select("laundry_logs", filters))


def _require_cost_item(item_id: int) -> None:
    if get_record_store().get("cost_items", item_id) is None:
        raise NotFoundError(f"Cost item {item_id} not found")


@service_action("entry")
def create_log_entry(payload: dict) -> ActionResult:
    patch = validate_payload(
        model=LaundryLogEntry,
        payload=drop_blank_fields(payload or {}),
        policy=LOG_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_laundry_log(patch)
    _require_cost_item(patch["item_id"])
    for f in ("out_quantity", "in_quantity", "pending_quantity", "returned_quantity"):
        patch.setdefault(f, 0)

    entry = LaundryLogRecord.from_row(get_record_store().insert("laundry_logs", patch))
    return ActionResult.ok("Log entry added.", entry, key="entry", created=True)


@service_action("entry")
def update_log_entry(entry_id: int, payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    patch = validate_payload(model=LaundryLogEntry, payload=data, policy=LOG_UPDATE_POLICY, partial=True)
    enforce_rules_laundry_log(patch)
    if "item_id" in patch:
        _require_cost_item(patch["item_id"])

    row = get_record_store().update("laundry_logs", entry_id, patch)
    if row is None:
        raise NotFoundError(f"Log entry {entry_id} not found")
    return ActionResult.ok("Log entry updated.", LaundryLogRecord.from_row(row), key="entry")


@service_action()
def delete_log_entry(entry_id: int) -> ActionResult:
    if not get_record_store().delete("laundry_logs", entry_id):
        raise NotFoundError(f"Log entry {entry_id} not found")
    return ActionResult.ok("Log entry deleted.")


# -----------------------------------------------------------------------------
# Monthly report
# -----------------------------------------------------------------------------

def validate_period(month, year) -> tuple[int, int]:
    try:
        month, year = int(month), int(year)
    except (TypeError, ValueError):
        raise ValidationError("month and year must be integers")
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1900 <= year <= 9999:
        raise ValidationError("year is out of range")
    return month, year


def cost_rows(month: int, year: int) -> list[CostRow]:
    return aggregate_costs(list_log_entries(), list_cost_items(), month, year)


def cost_report(month, year) -> dict:
    month, year = validate_period(month, year)
    entries = list_log_entries()
    rows = aggregate_costs(entries, list_cost_items(), month, year)
    return {
        "month": month,
        "year": year,
        "rows": [r.to_dict() for r in rows],
        "summary": cost_summary(rows),
        "last_update": last_log_update(entries),
    }
