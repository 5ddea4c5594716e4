# Overview: Flask API routes for depreciation (stock write-offs); parses input and returns JSON responses.

from flask import Blueprint, current_app, request, g

from ..decorators import require_actor, require_role
from ..services import depreciation_service
from ..services.results import ActionResult, SERVICE_ERRORS


depreciations_bp = Blueprint("depreciations", __name__, url_prefix="/api/depreciations")


@depreciations_bp.get("")
@require_actor
@require_role("admin", "manager")
def list_depreciations_route():
    try:
        records = depreciation_service.list_depreciations(
            item_id=request.args.get("item_id", type=int),
            status=request.args.get("status"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list depreciations")
        return ActionResult.fail(e).to_response()
    return {"items": [d.to_dict() for d in records], "count": len(records)}


@depreciations_bp.post("")
@require_actor
@require_role("admin", "manager")
def create_depreciation_route():
    data = request.get_json(silent=True) or {}
    return depreciation_service.record_depreciation(data, user_id=g.current_user.id).to_response()


@depreciations_bp.put("/<int:dep_id>")
@require_actor
@require_role("admin", "manager")
def update_depreciation_route(dep_id: int):
    data = request.get_json(silent=True) or {}
    if isinstance(data, dict):
        data.pop("user_id", None)
    return depreciation_service.update_depreciation(dep_id, data).to_response()


@depreciations_bp.delete("/<int:dep_id>")
@require_actor
@require_role("admin", "manager")
def delete_depreciation_route(dep_id: int):
    return depreciation_service.delete_depreciation(dep_id).to_response()
