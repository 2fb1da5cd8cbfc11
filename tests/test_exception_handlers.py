"""Tests for global exception handlers.

Validates status codes, error body shapes and that internals never leak.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import RateLimitResult
from app.core.errors import (
    AppError,
    NotFoundAppError,
    RateLimitExceededError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers

BLOCKED = RateLimitResult(success=False, limit=3, remaining=0, reset=1060, retry_after=30)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise ValidationAppError(code="bad_input", message="Bad input")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "bad_input"
        assert data["error"]["message"] == "Bad input"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_not_found_error_returns_404(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-not-found")
        async def endpoint():
            raise NotFoundAppError(
                code="missing", message="Missing", details={"category": "comment"}
            )

        response = client.get("/test-not-found")

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"category": "comment"}


class TestRateLimitExceededHandler:
    def test_returns_429_with_retry_information(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.post("/test-limited")
        async def endpoint():
            raise RateLimitExceededError.from_result(BLOCKED, "event")

        response = client.post("/test-limited")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit exceeded. Please wait 30 seconds before trying again.",
            "retryAfter": 30,
        }
        assert response.headers["Retry-After"] == "30"
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1060"

    def test_error_carries_category_details(self):
        exc = RateLimitExceededError.from_result(BLOCKED, "event")

        assert isinstance(exc, AppError)
        assert exc.code == "rate_limit_exceeded"
        assert exc.details == {"category": "event", "retry_after": 30}
        assert exc.retry_after == 30
        assert str(exc) == exc.message


class TestGeneralExceptionHandler:
    def test_handlers_registered(self, app_with_handlers: FastAPI):
        assert RateLimitExceededError in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_never_leaks_exception_details(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "POST"

        exc = RuntimeError("lock table corrupted at 0xdeadbeef")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "0xdeadbeef" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()
