"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → status from ``ERROR_STATUS_CODES`` (400 by default)
- RateLimitExceeded → 429 with a Retry-After header when known
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from weather_gateway.core.config import settings
from weather_gateway.core.errors import (
    AppError,
    LocationNotFound,
    QuotaStoreUnavailable,
    RateLimitExceeded,
    UpstreamError,
    UpstreamTimeout,
    ValidationAppError,
)
from weather_gateway.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Most specific classes first: LocationNotFound is an UpstreamError.
ERROR_STATUS_CODES: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (LocationNotFound, 404),
    (RateLimitExceeded, 429),
    (UpstreamError, 502),
    (QuotaStoreUnavailable, 503),
    (UpstreamTimeout, 504),
)


def status_code_for(exc: AppError) -> int:
    """Resolve the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceeded) and settings.rate_limit.include_headers:
        retry_after = (exc.details or {}).get("retry_after")
        if retry_after:
            headers["Retry-After"] = str(retry_after)

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message
    (no stack traces or internal messages leak to the client).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
