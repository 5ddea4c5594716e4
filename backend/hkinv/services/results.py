# Overview: Uniform outcome of mutating service operations.

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any

from ..validation import ValidationError, ConflictError

"""
Service result contract:

- Mutating service functions never raise for expected failures. They return an
  ActionResult with success=False, a human-readable message and an error code.
- Inside a service, failures are raised as one of the taxonomy exceptions below
  and converted by @service_action at the function boundary.
- Routes turn an ActionResult into JSON + the HTTP status for its error code.
"""


class NotFoundError(LookupError):
    """Referenced id does not exist."""


class PersistenceError(RuntimeError):
    """The record store call failed. The caller may retry."""


SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError, PersistenceError)

ERROR_CODES = {
    ValidationError: "validation_error",
    ConflictError: "conflict",
    NotFoundError: "not_found",
    PersistenceError: "persistence_error",
}

HTTP_STATUS = {
    "validation_error": 400,
    "not_found": 404,
    "conflict": 409,
    "persistence_error": 503,
}


def error_code(exc: Exception) -> str:
    for cls, code in ERROR_CODES.items():
        if isinstance(exc, cls):
            return code
    return "error"


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


@dataclass
class ActionResult:
    success: bool
    message: str
    payload: Any = None
    payload_key: str | None = None
    error: str | None = None
    created: bool = False

    @classmethod
    def ok(cls, message: str, payload: Any = None, *, key: str | None = None, created: bool = False) -> "ActionResult":
        return cls(success=True, message=message, payload=payload, payload_key=key, created=created)

    @classmethod
    def fail(cls, exc: Exception, payload: Any = None, *, key: str | None = None) -> "ActionResult":
        return cls(success=False, message=str(exc), payload=payload, payload_key=key, error=error_code(exc))

    @property
    def http_status(self) -> int:
        if self.success:
            return 201 if self.created else 200
        return HTTP_STATUS.get(self.error or "", 500)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error:
            out["error"] = self.error
        if self.payload is not None:
            out[self.payload_key or "data"] = _serialize(self.payload)
        return out

    def to_response(self):
        return self.to_dict(), self.http_status


def service_action(payload_key: str | None = None):
    """
    Convert taxonomy exceptions raised inside a service function into a failed
    ActionResult. Anything else propagates: it is a bug, not an outcome.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except SERVICE_ERRORS as e:
                return ActionResult.fail(e, key=payload_key)
        return decorated_function
    return decorator
