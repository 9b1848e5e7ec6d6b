"""Exception hierarchy shared by the domain, repository and HTTP layers."""

from __future__ import annotations

from typing import Any


class BookkeepingError(Exception):
    """Base exception for all bookkeeping errors."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(BookkeepingError):
    """Raised when input is malformed or missing required fields."""

    status_code = 400

    def __init__(self, detail: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(detail)
        self.errors = errors or []


class Unauthenticated(BookkeepingError):
    """Raised for a missing, invalid or expired session, or bad credentials."""

    status_code = 401


class Forbidden(BookkeepingError):
    """Raised when the caller is authenticated but does not own the target."""

    status_code = 403


class NotFound(BookkeepingError):
    """Raised when the referenced record does not exist."""

    status_code = 404


class Conflict(BookkeepingError):
    """Raised when a uniqueness constraint is violated."""

    status_code = 409


class RateLimited(BookkeepingError):
    """Raised when a caller exceeds the authentication rate limit."""

    status_code = 429


class Unexpected(BookkeepingError):
    """Raised for store or internal failures; the detail is never sent to callers."""

    status_code = 500


class ConfigurationError(BookkeepingError):
    """Raised when configuration is invalid or missing."""
