"""Tests for global exception handlers.

Validates that every error type maps to the right HTTP status and the shared
``{"error", "code", "request_id"}`` body, without leaking internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConflictAppError,
    NotFoundAppError,
    PersistenceAppError,
    RateLimitAppError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def handler_client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


@pytest.mark.parametrize(
    ("error_cls", "status_code"),
    [
        (ValidationAppError, 400),
        (AuthenticationAppError, 401),
        (NotFoundAppError, 404),
        (ConflictAppError, 409),
        (RateLimitAppError, 429),
        (PersistenceAppError, 500),
    ],
)
def test_app_errors_map_to_status(
    app_with_handlers: FastAPI, handler_client: TestClient, error_cls, status_code: int
) -> None:
    @app_with_handlers.get("/boom")
    async def boom():
        raise error_cls(code="some_code", message="Something happened")

    response = handler_client.get("/boom")

    assert response.status_code == status_code
    data = response.json()
    assert data["error"] == "Something happened"
    assert data["code"] == "some_code"
    assert "request_id" in data


def test_rate_limit_error_sets_headers(
    app_with_handlers: FastAPI, handler_client: TestClient
) -> None:
    @app_with_handlers.get("/limited")
    async def limited():
        raise RateLimitAppError(
            code="rate_limited",
            message="slow down",
            details={"retry_after": 12, "limit": 60, "remaining": 0, "reset_at": 1_060},
        )

    response = handler_client.get("/limited")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "12"
    assert response.headers["X-RateLimit-Limit"] == "60"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Reset"] == "1060"


def test_request_validation_is_400(
    app_with_handlers: FastAPI, handler_client: TestClient
) -> None:
    class Body(BaseModel):
        title: str

    @app_with_handlers.post("/items")
    async def create_item(body: Body):
        return body

    response = handler_client.post("/items", json={})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "invalid_request"
    assert data["error"].startswith("title:")


def test_unknown_route_keeps_error_shape(handler_client: TestClient) -> None:
    response = handler_client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"
    assert response.json()["code"] == "http_404"


def test_error_str_is_message() -> None:
    error = NotFoundAppError(code="post_not_found", message="Post not found")

    assert str(error) == "Post not found"
    assert isinstance(error, AppError)


class TestGeneralExceptionHandler:
    def test_handler_registered(self, app_with_handlers: FastAPI) -> None:
        assert Exception in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers

    def test_never_leaks_details(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("database password=hunter2 rejected")
        response = asyncio.run(general_exception_handler(request, exc))

        body = bytes(response.body).decode()
        data = json.loads(body)
        assert response.status_code == 500
        assert data["code"] == "internal_server_error"
        assert "hunter2" not in body
        assert "RuntimeError" not in body
        assert "Traceback" not in body

    def test_unhandled_exception_from_route_is_500(self, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("kaboom")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/crash")

        assert response.status_code == 500
        assert "kaboom" not in response.text
