"""Tests for sensitive data filtering and JSON log formatting."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to an in-memory JSON handler."""
    logger = logging.getLogger("test_capture")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_api_keys(capture) -> None:
    logger, stream = capture

    logger.info(
        "auth.check",
        extra={"api_key": "sk-secret-123", "x-api-key": "another-secret", "safe_field": "visible"},
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_redacts_nested_headers(capture) -> None:
    logger, stream = capture

    logger.info(
        "request",
        extra={"headers": {"X-API-Key": "secret-key", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(capture) -> None:
    logger, stream = capture

    logger.info(
        "post.created",
        extra={"slug": "my-first-post", "status_code": 201, "duration_ms": 12.5},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "post.created"
    assert record["level"] == "info"
    assert record["slug"] == "my-first-post"
    assert record["status_code"] == 201
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_is_attached_from_context(capture) -> None:
    logger, stream = capture
    set_request_id("req-123")

    logger.info("with_context")

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_exceptions_are_formatted(capture) -> None:
    logger, stream = capture

    try:
        raise ValueError("bad")
    except ValueError:
        logger.exception("failed")

    record = json.loads(stream.getvalue())
    assert "ValueError" in record["exc_info"]
