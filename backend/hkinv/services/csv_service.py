# Overview: CSV (and spreadsheet) boundary for exports and bulk imports.

"""
CSV Service

Export: header row first, then one row per record in header order. None
becomes an empty cell; quoting is whatever csv.writer needs.

Parse: header names are matched to known fields case-insensitively; extra
columns are ignored. Values stay strings: coercion belongs to the service
that consumes the row, so a bad numeric cell fails that row only.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .items_service import create_item
from .results import ActionResult

# Header -> field, in export order
ITEM_CSV_COLUMNS = {
    "Code": "code",
    "Name": "name",
    "Category": "category",
    "Description": "description",
    "Unit": "unit",
    "MinStock": "min_stock",
    "CurrentStock": "current_stock",
    "Location": "location",
    "SupplierID": "supplier_id",
    "Price": "price",
    "Status": "status",
    "ImageUrl": "image_url",
}

PRICE_CSV_COLUMNS = {"itemId": "item_id", "price": "price"}

EXPORT_COLUMNS = {
    "users": {
        "ID": "id",
        "Username": "username",
        "Name": "name",
        "Email": "email",
        "Role": "role",
        "Status": "status",
        "LastLogin": "last_login",
    },
    "items": {"ID": "id", **ITEM_CSV_COLUMNS, "CreatedAt": "created_at"},
    "transactions": {
        "ID": "id",
        "Type": "type",
        "ItemName": "item_name",
        "ItemCode": "item_code",
        "Quantity": "quantity",
        "SupplierName": "supplier_name",
        "BorrowerID": "borrower_id",
        "Notes": "notes",
        "Status": "status",
        "Date": "date",
        "DueDate": "due_date",
        "ReturnDate": "return_date",
    },
    "suppliers": {
        "ID": "id",
        "Code": "code",
        "Name": "name",
        "Contact": "contact",
        "Phone": "phone",
        "Email": "email",
        "Address": "address",
        "Status": "status",
        "CreatedAt": "created_at",
    },
    "categories": {"ID": "id", "Code": "code", "Name": "name", "Description": "description"},
    "cost-control": {
        "No": "item_id",
        "Item": "item_name",
        "PickUpDate": "pick_up_date",
        "QtyPickUp": "qty_pick_up",
        "Pending": "pending",
        "Returned": "returned",
        "Price": "price",
        "TotalCost": "total_cost",
    },
}


def _as_row(record: Any) -> Mapping:
    if isinstance(record, Mapping):
        return record
    return record.to_dict()


def export_csv(records: Iterable, headers: list[str], columns: Mapping[str, str] | None = None) -> str:
    """
    columns maps a header to the record key it reads; headers without an
    entry read the key of the same name.
    """
    columns = columns or {}
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, restval="", extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for record in records:
        row = _as_row(record)
        out = {}
        for header in headers:
            value = row.get(columns.get(header, header))
            out[header] = "" if value is None else value
        writer.writerow(out)
    return buf.getvalue()


def export_kind(kind: str, records: Iterable) -> str:
    columns = EXPORT_COLUMNS[kind]
    return export_csv(records, list(columns), columns)


def map_rows(raw_rows: Iterable[Mapping], field_map: Mapping[str, str]) -> list[dict]:
    lookup = {header.strip().lower(): f for header, f in field_map.items()}
    out = []
    for raw in raw_rows:
        row = {}
        for header, value in raw.items():
            if header is None:
                # Cells beyond the header row
                continue
            f = lookup.get(str(header).strip().lower())
            if f is None:
                continue
            row[f] = value.strip() if isinstance(value, str) else value
        out.append(row)
    return out


def parse_csv(text: str, field_map: Mapping[str, str]) -> list[dict]:
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text))
    rows = [r for r in reader if any((v or "").strip() for v in r.values() if isinstance(v, str))]
    return map_rows(rows, field_map)


def read_xlsx_rows(stream) -> list[dict]:
    """First sheet of a workbook as header-keyed dicts."""
    from openpyxl import load_workbook

    wb = load_workbook(stream, read_only=True, data_only=True)
    data = list(wb.active.values)
    if not data:
        return []
    headers = [str(h) if h is not None else "" for h in data[0]]
    rows = []
    for values in data[1:]:
        if all(v is None or v == "" for v in values):
            continue
        rows.append({headers[i]: (str(v) if v is not None else "") for i, v in enumerate(values) if i < len(headers)})
    return rows


def missing_headers(text: str, field_map: Mapping[str, str], required: Iterable[str]) -> list[str]:
    first_line = text.lstrip("\ufeff").splitlines()[0] if text.strip() else ""
    present = {h.strip().lower() for h in next(csv.reader([first_line]), [])}
    return [h for h in required if h.lower() not in present]


@dataclass
class ImportReport:
    imported: list = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    def add(self, row_number: int, result: ActionResult) -> None:
        if result.success:
            self.imported.append(result.payload)
        else:
            self.errors.append({"row": row_number, "message": result.message, "error": result.error})

    def to_dict(self) -> dict:
        return {
            "imported": len(self.imported),
            "failed": len(self.errors),
            "errors": self.errors,
        }


def import_item_rows(rows: Iterable[Mapping]) -> ImportReport:
    """Create one item per row; a failing row is reported and skipped."""
    report = ImportReport()
    # Row 1 is the header line
    for row_number, row in enumerate(rows, start=2):
        report.add(row_number, create_item(dict(row)))
    return report


def import_items_csv(text: str) -> ImportReport:
    return import_item_rows(parse_csv(text, ITEM_CSV_COLUMNS))
