# Overview: Request guards for API routes; resolves the acting user and checks roles.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


def _resolve_actor() -> User | None:
    raw = request.headers.get("X-User-Id", "").strip()
    if not (raw.isascii() and raw.isdigit()):
        return None
    user = db.session.get(User, int(raw))
    if user is None or user.status != "active":
        return None
    return user


def require_actor(f):
    """
    Identify the acting user.

    The surrounding application authenticates and forwards the user id in
    the X-User-Id header. Sets g.current_user. Returns 401 if the header is
    missing, unknown, or names an inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _resolve_actor()
        if user is None:
            return jsonify({"error": "Authentication required"}), 401
        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require one of the given roles. Must run after @require_actor."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
