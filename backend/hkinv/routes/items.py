# Overview: Flask API routes for items; parses input and returns JSON responses.

"""
Item Routes

Anyone signed in can read items; admins and managers change them.
Every listed item carries its derived stock_status (low / medium / high).
"""

from flask import Blueprint, current_app, request

from ..decorators import require_actor, require_role
from ..services import items_service
from ..services.reporting_service import low_stock_items, stock_status
from ..services.results import ActionResult, SERVICE_ERRORS


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


def _item_dict(item) -> dict:
    return {**item.to_dict(), "stock_status": stock_status(item)}


@items_bp.get("")
@require_actor
def list_items_route():
    """
    Query params:
    - status: active | inactive
    - category: category name
    - search: substring of name or code
    """
    try:
        items = items_service.list_items(
            status=request.args.get("status"),
            category=request.args.get("category"),
            search=request.args.get("search"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list items")
        return ActionResult.fail(e).to_response()
    return {"items": [_item_dict(i) for i in items], "count": len(items)}


@items_bp.get("/low-stock")
@require_actor
def low_stock_route():
    limit = request.args.get("limit", type=int)
    try:
        items = low_stock_items(items_service.list_items(status="active"), limit=limit)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list low-stock items")
        return ActionResult.fail(e).to_response()
    return {"items": [_item_dict(i) for i in items], "count": len(items)}


@items_bp.get("/<int:item_id>")
@require_actor
def get_item_route(item_id: int):
    try:
        item = items_service.get_item(item_id)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to load item %s", item_id)
        return ActionResult.fail(e).to_response()
    if item is None:
        return {"error": "Item not found"}, 404
    return {"item": _item_dict(item)}


@items_bp.post("")
@require_actor
@require_role("admin", "manager")
def create_item_route():
    data = request.get_json(silent=True) or {}
    return items_service.create_item(data).to_response()


@items_bp.put("/<int:item_id>")
@require_actor
@require_role("admin", "manager")
def update_item_route(item_id: int):
    data = request.get_json(silent=True) or {}
    return items_service.update_item(item_id, data).to_response()


@items_bp.delete("/<int:item_id>")
@require_actor
@require_role("admin", "manager")
def delete_item_route(item_id: int):
    return items_service.delete_item(item_id).to_response()
