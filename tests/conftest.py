"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config`` so
the global settings object never points at a real database or secret.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["APP_API_KEY"] = "test-api-key-123"
os.environ["DB_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.app_factory import create_app
from app.core.config import settings
from app.db.database import Database
from app.services.post_store import PostStore

VALID_API_KEY = "test-api-key-123"


@pytest.fixture
def database() -> Database:
    """Fresh in-memory SQLite database with the schema created."""
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def store(database: Database) -> PostStore:
    return PostStore(database)


@pytest.fixture
def clock() -> Mock:
    """Controllable time source for rate limiter tests."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def rate_limiter(clock: Mock) -> InMemorySlidingWindowRateLimiter:
    return InMemorySlidingWindowRateLimiter(limit=60, window_seconds=60, clock=clock)


@pytest.fixture
def app(database: Database, rate_limiter: InMemorySlidingWindowRateLimiter) -> FastAPI:
    """Application wired to the per-test database and limiter."""
    return create_app(settings, database=database, rate_limiter=rate_limiter)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers carrying the configured API key."""
    return {"X-API-Key": VALID_API_KEY}
