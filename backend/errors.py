"""
Error taxonomy for the To-Do backend.

Every failure a service can report is one of these classes. Each carries the
HTTP status it maps to, a human-readable message and optional details.
main.py renders them as ``{"error": message, "details": ...}``.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for all expected application errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"


class InvalidOperation(AppError):
    """A well-formed request for a transition the model does not allow."""

    status_code = 400
    default_message = "Invalid operation"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Not authenticated"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class MissingCredential(Unauthenticated):
    default_message = "Access token required"


class InvalidCredential(Unauthenticated):
    default_message = "Invalid or expired token"


class UnknownPrincipal(Unauthenticated):
    default_message = "Invalid token - user not found"


class PermissionDenied(AppError):
    status_code = 403
    default_message = "Permission denied"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class NotFoundOrDenied(NotFound):
    """
    The resource is missing or the principal cannot see it.

    Both cases produce the same message so responses never reveal whether a
    private list, task or subtask exists.
    """

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found or access denied")


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class Unexpected(AppError):
    status_code = 500
