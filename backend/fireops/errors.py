"""Error taxonomy for lifecycle operations.

Services raise these; the application maps them onto the JSON envelope
``{"success": false, "message": ..., **detail}`` with the carried status code.
"""

from typing import Any


class DispatchError(Exception):
    """Base class for errors returned to API callers."""

    status_code: int = 500
    reason: str = "unexpected"

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        status_code: int | None = None,
        detail: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}

    def to_response(self) -> dict[str, Any]:
        """Render as the API error envelope."""
        return {
            "success": False,
            "message": self.message,
            "reason": self.reason,
            **self.detail,
        }


class ValidationError(DispatchError):
    """Missing or malformed input."""

    status_code = 400
    reason = "validation"


class NotFoundError(DispatchError):
    """Referenced entity does not exist."""

    status_code = 404
    reason = "not_found"


class ConflictError(DispatchError):
    """Invariant violation: terminal alert, busy station, unit already on duty."""

    status_code = 409
    reason = "conflict"


class UnexpectedError(DispatchError):
    """Persistence or publish failure surfaced to the caller."""

    status_code = 500
    reason = "unexpected"
