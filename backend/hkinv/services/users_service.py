# Overview: Service-layer operations for user accounts; bcrypt password hashing lives here.

"""
Users Service

Accounts are attributable actors for every transaction and depreciation.

- username is unique; email must look like an address
- passwords are hashed with bcrypt (cost factor 12), minimum 8 characters
- a user referenced by the ledger is deactivated instead of deleted, so
  transaction history keeps resolving to a name
"""
from __future__ import annotations

import bcrypt

from ..extensions import db
from ..models import User
from ..validation import (
    ModelValidationPolicy,
    ConflictError,
    ValidationError,
    validate_payload,
    drop_blank_fields,
    enforce_rules_user,
)
from .record_store import get_record_store
from .records import UserRecord, decode_all
from .results import ActionResult, NotFoundError, service_action
from hkinv.time_utils import utcnow

MIN_PASSWORD_LENGTH = 8

USER_FIELDS = {"username", "name", "email", "role", "status", "avatar_url"}

USER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=USER_FIELDS,
    required_on_create={"username", "name", "email"},
)

USER_UPDATE_POLICY = ModelValidationPolicy(writable_fields=USER_FIELDS)


def hash_password(password: str) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def list_users(*, role: str | None = None, status: str | None = None) -> list[UserRecord]:
    filters = {}
    if role:
        filters["role"] = role
    if status:
        filters["status"] = status
    return decode_all("users", get_record_store().select("users", filters))


def get_user(user_id: int) -> UserRecord | None:
    row = get_record_store().get("users", user_id)
    return UserRecord.from_row(row) if row else None


def _ensure_username_free(username: str, *, exclude_id: int | None = None) -> None:
    for row in get_record_store().select("users", {"username": username}):
        if row["id"] != exclude_id:
            raise ConflictError("Username already exists.")


@service_action("user")
def create_user(payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    password = data.pop("password", None)

    patch = validate_payload(model=User, payload=data, policy=USER_CREATE_POLICY, partial=False)
    enforce_rules_user(patch)
    _ensure_username_free(patch["username"])

    patch.setdefault("role", "staff")
    patch.setdefault("status", "active")
    if password is not None:
        patch["password_hash"] = hash_password(password)

    user = UserRecord.from_row(get_record_store().insert("users", patch))
    return ActionResult.ok("User added.", user, key="user", created=True)


@service_action("user")
def update_user(user_id: int, payload: dict) -> ActionResult:
    data = drop_blank_fields(payload or {})
    data.pop("id", None)
    data.pop("password", None)
    patch = validate_payload(model=User, payload=data, policy=USER_UPDATE_POLICY, partial=True)
    enforce_rules_user(patch)

    store = get_record_store()
    if store.get("users", user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    if "username" in patch:
        _ensure_username_free(patch["username"], exclude_id=user_id)

    row = store.update("users", user_id, patch)
    if row is None:
        raise NotFoundError(f"User {user_id} not found")
    return ActionResult.ok("User updated.", UserRecord.from_row(row), key="user")


@service_action("user")
def set_password(user_id: int, password: str) -> ActionResult:
    password_hash = hash_password(password)
    row = get_record_store().update("users", user_id, {"password_hash": password_hash})
    if row is None:
        raise NotFoundError(f"User {user_id} not found")
    return ActionResult.ok("Password updated.", UserRecord.from_row(row), key="user")


def check_password(user_id: int, password: str) -> bool:
    user = db.session.get(User, user_id)
    return user is not None and verify_password(password, user.password_hash)


@service_action("user")
def record_login(user_id: int) -> ActionResult:
    row = get_record_store().update("users", user_id, {"last_login": utcnow()})
    if row is None:
        raise NotFoundError(f"User {user_id} not found")
    return ActionResult.ok("Login recorded.", UserRecord.from_row(row), key="user")


@service_action("user")
def delete_user(user_id: int) -> ActionResult:
    store = get_record_store()
    if store.get("users", user_id) is None:
        raise NotFoundError(f"User {user_id} not found")

    referenced = store.select("transactions", {"user_id": user_id}) or store.select(
        "depreciations", {"user_id": user_id}
    )
    if referenced:
        row = store.update("users", user_id, {"status": "inactive"})
        return ActionResult.ok(
            "User has recorded activity; it was deactivated instead of deleted.",
            UserRecord.from_row(row),
            key="user",
        )

    store.delete("users", user_id)
    return ActionResult.ok("User deleted.")
