# Overview: Flask API routes for reports, exports and bulk imports; parses input and returns JSON responses.

"""
Report Routes

- dashboard / notifications / locations: summaries over current data
- export/<kind>: CSV download of users, items, transactions, suppliers or
  categories; start/end (YYYY-MM-DD, inclusive) filter by date
- import/items: CSV or .xlsx upload, one item per row
- stock/reconcile: recompute stock from the ledger, optionally repairing it
"""

from flask import Blueprint, Response, current_app, request

from ..decorators import require_actor, require_role
from ..services import csv_service, ledger_service
from ..services.record_store import get_record_store
from ..services.records import decode_all
from ..services.reporting_service import (
    dashboard_summary,
    location_totals,
    notifications,
    transaction_report,
)
from ..services.results import ActionResult, SERVICE_ERRORS
from ..validation import ValidationError
from hkinv.time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

EXPORT_KINDS = ("users", "items", "transactions", "suppliers", "categories")


def _load(table: str, filters: dict | None = None) -> list:
    return decode_all(table, get_record_store().select(table, filters))


def _parse_range(start: str | None, end: str | None):
    try:
        start_d = parse_iso_date(start) if start else None
        end_d = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("start and end must be dates (YYYY-MM-DD)")
    if start_d and end_d and end_d < start_d:
        raise ValidationError("end cannot be before start")
    return start_d, end_d


def _created_in_range(records: list, start, end) -> list:
    out = []
    for r in records:
        created = r.created_at.date() if getattr(r, "created_at", None) else None
        if created is None:
            out.append(r)
            continue
        if start and created < start:
            continue
        if end and created > end:
            continue
        out.append(r)
    return out


@reports_bp.get("/dashboard")
@require_actor
def dashboard_route():
    try:
        summary = dashboard_summary(
            items=_load("items"),
            transactions=_load("transactions"),
            users=_load("users"),
            suppliers=_load("suppliers"),
            categories=_load("categories"),
            low_stock_limit=current_app.config.get("LOW_STOCK_DASHBOARD_LIMIT", 5),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to build dashboard")
        return ActionResult.fail(e).to_response()
    return summary


@reports_bp.get("/notifications")
@require_actor
def notifications_route():
    try:
        notes = notifications(_load("items", {"status": "active"}), _load("transactions"))
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to build notifications")
        return ActionResult.fail(e).to_response()
    return {"items": [n.to_dict() for n in notes], "count": len(notes)}


@reports_bp.get("/locations")
@require_actor
def locations_route():
    try:
        totals = location_totals(_load("items", {"status": "active"}))
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to build location totals")
        return ActionResult.fail(e).to_response()
    return {"items": totals, "count": len(totals)}


@reports_bp.get("/export/<kind>")
@require_actor
def export_route(kind: str):
    if kind not in EXPORT_KINDS:
        return {"error": f"Unknown export: {kind}. Use one of: {', '.join(EXPORT_KINDS)}"}, 400
    try:
        start, end = _parse_range(request.args.get("start"), request.args.get("end"))
        if kind == "transactions":
            records = transaction_report(
                _load("transactions"),
                _load("items"),
                _load("suppliers"),
                start=start,
                end=end,
            )
        elif kind == "categories":
            records = _load("categories")
        else:
            records = _created_in_range(_load(kind), start, end)
        content = csv_service.export_kind(kind, records)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to export %s", kind)
        return ActionResult.fail(e).to_response()
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={kind}.csv"},
    )


@reports_bp.post("/import/items")
@require_actor
@require_role("admin", "manager")
def import_items_route():
    try:
        if "file" in request.files:
            file = request.files["file"]
            ext = (file.filename or "").rsplit(".", 1)[-1].lower()
            if ext == "csv":
                report = csv_service.import_items_csv(file.stream.read().decode("utf-8-sig"))
            elif ext in {"xlsx", "xlsm"}:
                try:
                    raw_rows = csv_service.read_xlsx_rows(file.stream)
                except Exception:
                    current_app.logger.exception("Failed to read workbook %s", file.filename)
                    return {"error": "Failed to parse upload"}, 400
                rows = csv_service.map_rows(raw_rows, csv_service.ITEM_CSV_COLUMNS)
                report = csv_service.import_item_rows(rows)
            else:
                return {"error": "Unsupported file format"}, 400
        else:
            text = request.get_data(as_text=True)
            if not text.strip():
                return {"error": "CSV content is required"}, 400
            report = csv_service.import_items_csv(text)
    except UnicodeDecodeError:
        return {"error": "File must be UTF-8 encoded"}, 400

    summary = report.to_dict()
    success = bool(report.imported) or not report.errors
    summary.update(
        success=success,
        message=f"{summary['imported']} item(s) imported, {summary['failed']} failed.",
    )
    return summary, 200 if success else 400


@reports_bp.post("/stock/reconcile")
@require_actor
@require_role("admin", "manager")
def reconcile_route():
    data = request.get_json(silent=True) or {}
    fix = bool(data.get("fix")) or request.args.get("fix", "false").lower() == "true"
    return ledger_service.reconcile_stock(fix=fix).to_response()
