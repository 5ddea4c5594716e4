# Overview: Flask API routes for laundry cost control; parses input and returns JSON responses.

"""
Cost Control Routes

The monthly report defaults to the current month. Price lists are uploaded
as CSV (multipart "file" or a text/csv body) with the columns itemId,price.
"""

from flask import Blueprint, Response, current_app, request

from ..decorators import require_actor, require_role
from ..services import cost_control_service
from ..services.csv_service import export_kind
from ..services.results import ActionResult, SERVICE_ERRORS
from hkinv.time_utils import today


cost_control_bp = Blueprint("cost_control", __name__, url_prefix="/api/cost-control")


def _period() -> tuple:
    now = today()
    return request.args.get("month", now.month), request.args.get("year", now.year)


def _uploaded_text() -> str:
    if "file" in request.files:
        return request.files["file"].stream.read().decode("utf-8-sig")
    return request.get_data(as_text=True)


@cost_control_bp.get("")
@require_actor
@require_role("admin", "manager")
def cost_report_route():
    month, year = _period()
    try:
        report = cost_control_service.cost_report(month, year)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to build cost report")
        return ActionResult.fail(e).to_response()
    return report


@cost_control_bp.get("/export")
@require_actor
@require_role("admin", "manager")
def export_cost_report_route():
    month, year = _period()
    try:
        month, year = cost_control_service.validate_period(month, year)
        content = export_kind("cost-control", cost_control_service.cost_rows(month, year))
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to export cost report")
        return ActionResult.fail(e).to_response()
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=cost_control_{year}_{month:02d}.csv"},
    )


@cost_control_bp.get("/items")
@require_actor
@require_role("admin", "manager")
def list_cost_items_route():
    try:
        items = cost_control_service.list_cost_items()
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list cost items")
        return ActionResult.fail(e).to_response()
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@cost_control_bp.post("/items")
@require_actor
@require_role("admin", "manager")
def create_cost_item_route():
    data = request.get_json(silent=True) or {}
    return cost_control_service.create_cost_item(data).to_response()


@cost_control_bp.put("/items/<int:item_id>/price")
@require_actor
@require_role("admin", "manager")
def update_price_route(item_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("price") is None:
        return {"error": "price is required"}, 400
    return cost_control_service.update_cost_item_price(item_id, data["price"]).to_response()


@cost_control_bp.post("/prices/import")
@require_actor
@require_role("admin", "manager")
def import_prices_route():
    text = _uploaded_text()
    if not text.strip():
        return {"error": "CSV content is required"}, 400
    return cost_control_service.import_prices_csv(text).to_response()


@cost_control_bp.get("/logs")
@require_actor
@require_role("admin", "manager")
def list_logs_route():
    try:
        entries = cost_control_service.list_log_entries(item_id=request.args.get("item_id", type=int))
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list laundry log")
        return ActionResult.fail(e).to_response()
    return {"items": [e.to_dict() for e in entries], "count": len(entries)}


@cost_control_bp.post("/logs")
@require_actor
@require_role("admin", "manager")
def create_log_route():
    data = request.get_json(silent=True) or {}
    return cost_control_service.create_log_entry(data).to_response()


@cost_control_bp.put("/logs/<int:entry_id>")
@require_actor
@require_role("admin", "manager")
def update_log_route(entry_id: int):
    data = request.get_json(silent=True) or {}
    return cost_control_service.update_log_entry(entry_id, data).to_response()


@cost_control_bp.delete("/logs/<int:entry_id>")
@require_actor
@require_role("admin", "manager")
def delete_log_route(entry_id: int):
    return cost_control_service.delete_log_entry(entry_id).to_response()
