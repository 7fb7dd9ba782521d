"""Domain error taxonomy.

Every expected failure is raised as an AppError subclass and rendered as an
RFC 9457 Problem Details response by the handler registered in main.py.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto a client-visible HTTP status."""

    status_code: int = 500
    title: str = "Internal Server Error"
    slug: str = "internal-error"
    default_detail: str = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(AppError):
    """Structural, range or enum validation failure (field-specific message)."""

    status_code = 400
    title = "Bad Request"
    slug = "invalid-input"
    default_detail = "Invalid input"


class InvalidOrExpired(AppError):
    """An invite or reset token that does not match or has expired."""

    status_code = 400
    title = "Bad Request"
    slug = "invalid-or-expired-token"
    default_detail = "Invalid or expired token"


class Unauthenticated(AppError):
    status_code = 401
    title = "Unauthorized"
    slug = "unauthenticated"
    default_detail = "Not authenticated"


class Forbidden(AppError):
    """Authenticated but denied by policy. The detail never says why."""

    status_code = 403
    title = "Forbidden"
    slug = "forbidden"
    default_detail = "Insufficient permissions"


class NotFound(AppError):
    """Absent, or outside the caller's scope. The two are indistinguishable."""

    status_code = 404
    title = "Not Found"
    slug = "not-found"
    default_detail = "Not found"


class Conflict(AppError):
    status_code = 409
    title = "Conflict"
    slug = "conflict"
    default_detail = "Conflict"
