"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep the shape flexible while encouraging
    consistent keys across the codebase.
    """

    hint: str
    window: str
    limit: int
    retry_after: int
    timeout_seconds: float
    location_id: str
    upstream_status: int
    request_id: str
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

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class RateLimitExceeded(AppError):
    """Raised when an upstream call is denied by the quota windows.

    Also raised when the upstream provider itself answers with HTTP 429.
    """


class QuotaStoreUnavailable(AppError):
    """Raised when the shared counter store cannot be reached."""


class UpstreamTimeout(AppError):
    """Raised when the upstream fetch does not complete within its deadline."""


class UpstreamError(AppError):
    """Raised when the upstream provider call fails."""


class LocationNotFound(UpstreamError):
    """Raised when the upstream provider does not know the requested location."""
