"""Application factory for the FastAPI app.

Builds the long-lived components (database, rate limiter, auth gate, post
store) once, parks them on ``app.state`` and wires middleware, exception
handlers and routers. Tests pass their own database or limiter to get an
isolated instance.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.api.routes import health_router, posts_router
from app.core.auth import AuthGate
from app.core.config import Settings
from app.core.config import settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import build_rate_limiter
from app.db.database import Database
from app.services.post_store import PostStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; defaults to the environment-loaded ones.
        database: Pre-built database; built from ``settings.db`` when omitted.
        rate_limiter: Pre-built limiter; built from ``settings.app`` when omitted.

    Returns:
        Configured FastAPI app.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Blog API",
        description="Content API for blog posts. Write operations require X-API-Key.",
        version="0.1.0",
        debug=cfg.app.debug,
    )

    db = database or Database.from_settings(cfg.db)
    if cfg.db.create_tables:
        db.create_all()

    limiter = rate_limiter or build_rate_limiter(cfg.app)

    app.state.settings = cfg
    app.state.db = db
    app.state.rate_limiter = limiter
    app.state.auth_gate = AuthGate(
        cfg.app.api_key,
        limiter,
        include_rate_limit_headers=cfg.app.rate_limit_include_headers,
    )
    app.state.post_store = PostStore.from_settings(db, cfg.app)

    if not cfg.app.api_key:
        logger.warning("auth.api_key_not_configured", extra={"env": cfg.app_env})

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(posts_router, prefix=API_PREFIX)
    app.include_router(health_router)

    return app
