"""Application-level exception types.

This module defines domain errors raised by the store, the auth gate and the
HTTP layer, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    field: str
    slug: str
    limit: int
    actual_value: int
    retry_after: int
    reset_at: int
    remaining: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    http_status: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""

    http_status = 400


class AuthenticationAppError(AppError):
    """Raised when the API key is missing or does not match."""

    http_status = 401


class NotFoundAppError(AppError):
    """Raised when the requested post does not exist."""

    http_status = 404


class ConflictAppError(AppError):
    """Raised when a post with the same slug already exists."""

    http_status = 409


class RateLimitAppError(AppError):
    """Raised when a caller exceeds the request budget."""

    http_status = 429


class PersistenceAppError(AppError):
    """Raised when the database fails in a way not otherwise classified."""

    http_status = 500
