"""Error hierarchy shared by services and the HTTP layer.

Every error carries a stable ``code`` and the HTTP status it maps to, so the
global handlers in ``main.py`` can render one response shape for all of them.
"""

from __future__ import annotations

from typing import Any


class DirectoryError(Exception):
    """Base exception for all directory failures."""

    def __init__(self, message: str, code: str, http_status: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_response(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "code": self.code}


class NotFoundError(DirectoryError):
    def __init__(self, message: str) -> None:
        super().__init__(message, "NOT_FOUND", 404)


class ValidationFailure(DirectoryError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.field = field


class AuthenticationRequired(DirectoryError):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, "AUTHENTICATION_REQUIRED", 401)


class AccessDenied(DirectoryError):
    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message, "ACCESS_DENIED", 403)


class UpstreamFailure(DirectoryError):
    """Persistence or storage collaborator failed."""

    def __init__(self, message: str, operation: str = "query") -> None:
        super().__init__(message, "UPSTREAM_FAILURE", 503)
        self.operation = operation
