"""
Domain error taxonomy.

Every error carries the HTTP status it maps to, a stable machine code,
and optionally the resource kind and a reason code so the boundary can
render a typed failure without inspecting message text.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        resource: Optional[str] = None,
        reason: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict:
        error = {"message": self.message, "code": self.code}
        if self.resource:
            error["resource"] = self.resource
        if self.reason:
            error["reason"] = self.reason
        if self.details is not None:
            error["details"] = self.details
        return error


class ValidationError(AppError):
    """Malformed or inconsistent input the caller can correct."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Not authenticated", **kwargs):
        super().__init__(message, **kwargs)


class AuthorizationError(AppError):
    """
    Actor lacks permission for a specific resource instance.

    The message is always generic so an unauthorized actor learns nothing
    about the resource beyond the denial itself.
    """

    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", **kwargs):
        kwargs.setdefault("reason", "missing")
        super().__init__(f"{resource} not found", resource=resource, **kwargs)


class ConflictError(AppError):
    """State invariant violation (duplicate slug, address in use, bad transition)."""

    status_code = 409
    code = "CONFLICT"
