# Overview: Flask API routes for item categories; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..decorators import require_actor, require_role
from ..services import categories_service
from ..services.results import ActionResult, SERVICE_ERRORS


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_actor
def list_categories_route():
    try:
        categories = categories_service.list_categories(
            status=request.args.get("status"),
            search=request.args.get("search"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list categories")
        return ActionResult.fail(e).to_response()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.post("")
@require_actor
@require_role("admin", "manager")
def create_category_route():
    data = request.get_json(silent=True) or {}
    return categories_service.create_category(data).to_response()


@categories_bp.put("/<int:category_id>")
@require_actor
@require_role("admin", "manager")
def update_category_route(category_id: int):
    data = request.get_json(silent=True) or {}
    return categories_service.update_category(category_id, data).to_response()


@categories_bp.delete("/<int:category_id>")
@require_actor
@require_role("admin", "manager")
def delete_category_route(category_id: int):
    return categories_service.delete_category(category_id).to_response()
