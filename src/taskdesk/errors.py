"""
Error taxonomy shared by the task service and the task client.

The service raises these from routers and dependencies; exception handlers in
``taskdesk.main`` render them as JSON. The client raises the same classes when
it decodes an error response, so callers handle one set of exceptions on both
sides of the wire.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class TaskdeskError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def error(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


def field_error(field: str, message: str) -> Dict[str, str]:
    """Return a single ``{"field": ..., "message": ...}`` entry."""
    return {"field": field, "message": message}


# PUBLIC_INTERFACE
class ValidationError(TaskdeskError):
    """A field is missing, malformed or out of range."""

    status_code = 422
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors: List[Dict[str, str]] = list(errors or [])

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(errors=[field_error(field, message)])

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


# PUBLIC_INTERFACE
class NotFoundError(TaskdeskError):
    """The target record does not exist for the calling owner."""

    status_code = 404
    default_message = "Not found"


# PUBLIC_INTERFACE
class AuthError(TaskdeskError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_message = "Not authenticated"


# PUBLIC_INTERFACE
class ServerError(TaskdeskError):
    """Unexpected failure; details stay in the server log."""

    status_code = 500
    default_message = "Internal server error"


_BY_STATUS = {
    401: AuthError,
    404: NotFoundError,
    400: ValidationError,
    422: ValidationError,
}


# PUBLIC_INTERFACE
def error_from_response(status_code: int, body: Any) -> TaskdeskError:
    """
    Build the matching exception for an error response.

    ``body`` is the decoded JSON payload (or anything else when the response was
    not JSON). Unknown 4xx statuses become ValidationError; 5xx become ServerError.
    """
    payload: Dict[str, Any] = body if isinstance(body, dict) else {}
    message = payload.get("message")
    if message is None and isinstance(payload.get("detail"), str):
        message = payload["detail"]

    cls = _BY_STATUS.get(status_code)
    if cls is None:
        cls = ServerError if status_code >= 500 else ValidationError
    if cls is ValidationError:
        errors = payload.get("errors") if isinstance(payload.get("errors"), list) else []
        return ValidationError(message, errors=errors)
    return cls(message)
