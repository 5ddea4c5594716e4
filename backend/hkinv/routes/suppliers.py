# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..decorators import require_actor, require_role
from ..services import suppliers_service
from ..services.results import ActionResult, SERVICE_ERRORS


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_actor
def list_suppliers_route():
    try:
        suppliers = suppliers_service.list_suppliers(
            status=request.args.get("status"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list suppliers")
        return ActionResult.fail(e).to_response()
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}


@suppliers_bp.post("")
@require_actor
@require_role("admin", "manager")
def create_supplier_route():
    data = request.get_json(silent=True) or {}
    return suppliers_service.create_supplier(data).to_response()


@suppliers_bp.put("/<int:supplier_id>")
@require_actor
@require_role("admin", "manager")
def update_supplier_route(supplier_id: int):
    data = request.get_json(silent=True) or {}
    return suppliers_service.update_supplier(supplier_id, data).to_response()


@suppliers_bp.delete("/<int:supplier_id>")
@require_actor
@require_role("admin", "manager")
def delete_supplier_route(supplier_id: int):
    return suppliers_service.delete_supplier(supplier_id).to_response()
