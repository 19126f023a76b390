"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

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
from weather_gateway.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


def _raise_on(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def endpoint():
        raise exc


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (ValidationAppError(code="v", message="m"), 400),
            (LocationNotFound(code="location_not_found", message="m"), 404),
            (RateLimitExceeded(code="rate_limit_exceeded", message="m"), 429),
            (UpstreamError(code="upstream_error", message="m"), 502),
            (QuotaStoreUnavailable(code="quota_store_unavailable", message="m"), 503),
            (UpstreamTimeout(code="upstream_timeout", message="m"), 504),
            (AppError(code="other", message="m"), 400),
        ],
    )
    def test_status_code_for(self, exc: AppError, status: int):
        assert status_code_for(exc) == status


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        _raise_on(app_with_handlers, "/test-validation", ValidationAppError(code="test_validation", message="Bad"))

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "test_validation"
        assert data["error"]["message"] == "Bad"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/test-details",
            LocationNotFound(
                code="location_not_found",
                message="Location not found: 42",
                details={"location_id": "42", "upstream_status": 404},
            ),
        )

        response = client.get("/test-details")

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"location_id": "42", "upstream_status": 404}

    def test_rate_limit_sets_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify throttling answers 429 with a Retry-After header."""
        _raise_on(
            app_with_handlers,
            "/test-throttle",
            RateLimitExceeded(
                code="rate_limit_exceeded",
                message="Upstream hourly quota exhausted. Try again later.",
                details={"window": "hourly", "limit": 60, "retry_after": 1200},
            ),
        )

        response = client.get("/test-throttle")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1200"
        assert response.json()["error"]["details"]["window"] == "hourly"

    def test_upstream_429_has_no_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/test-upstream-throttle",
            RateLimitExceeded(code="upstream_rate_limited", message="m", details={"upstream_status": 429}),
        )

        response = client.get("/test-upstream-throttle")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_retry_after_can_be_disabled(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/test-no-headers",
            RateLimitExceeded(code="rate_limit_exceeded", message="m", details={"retry_after": 30}),
        )

        with patch.object(settings.rate_limit, "include_headers", False):
            response = client.get("/test-no-headers")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_quota_store_outage_returns_503(self, client: TestClient, app_with_handlers: FastAPI):
        _raise_on(
            app_with_handlers,
            "/test-store",
            QuotaStoreUnavailable(code="quota_store_unavailable", message="Quota store unreachable"),
        )

        response = client.get("/test-store")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "quota_store_unavailable"

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        _raise_on(app_with_handlers, "/test-format", UpstreamTimeout(code="upstream_timeout", message="slow"))

        response = client.get("/test-format")
        data = response.json()

        assert response.status_code == 504
        assert set(data["error"]) >= {"code", "message", "request_id"}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: redis password is hunter2")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "hunter2" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


def test_multiple_handler_setups_does_not_fail():
    """Verify calling setup_exception_handlers multiple times is safe."""
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
