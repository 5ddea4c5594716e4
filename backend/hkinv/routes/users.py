# Overview: Flask API routes for user accounts; parses input and returns JSON responses.

"""
User Routes

Admins manage accounts; managers may list them. A user cannot delete their
own account.
"""

from flask import Blueprint, current_app, request, g

from ..decorators import require_actor, require_role
from ..services import users_service
from ..services.results import ActionResult, SERVICE_ERRORS
from ..validation import ValidationError


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_actor
@require_role("admin", "manager")
def list_users_route():
    try:
        users = users_service.list_users(
            role=request.args.get("role"),
            status=request.args.get("status"),
        )
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to list users")
        return ActionResult.fail(e).to_response()
    return {"items": [u.to_dict() for u in users], "count": len(users)}


@users_bp.post("")
@require_actor
@require_role("admin")
def create_user_route():
    data = request.get_json(silent=True) or {}
    return users_service.create_user(data).to_response()


@users_bp.get("/<int:user_id>")
@require_actor
@require_role("admin")
def get_user_route(user_id: int):
    try:
        user = users_service.get_user(user_id)
    except SERVICE_ERRORS as e:
        current_app.logger.exception("Failed to load user %s", user_id)
        return ActionResult.fail(e).to_response()
    if user is None:
        return {"error": "User not found"}, 404
    return {"user": user.to_dict()}


@users_bp.put("/<int:user_id>")
@require_actor
@require_role("admin")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    return users_service.update_user(user_id, data).to_response()


@users_bp.post("/<int:user_id>/password")
@require_actor
@require_role("admin")
def set_password_route(user_id: int):
    data = request.get_json(silent=True) or {}
    password = data.get("password")
    if not password:
        return {"error": "password is required"}, 400
    return users_service.set_password(user_id, password).to_response()


@users_bp.delete("/<int:user_id>")
@require_actor
@require_role("admin")
def delete_user_route(user_id: int):
    if user_id == g.current_user.id:
        return ActionResult.fail(ValidationError("You cannot delete your own account")).to_response()
    return users_service.delete_user(user_id).to_response()
