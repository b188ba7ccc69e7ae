"""Rate limiter construction from configuration.

The limiter is created once by the app factory and handed to the auth gate,
so its state lives exactly as long as the application object.
"""

from __future__ import annotations

import logging

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import AppSettings

logger = logging.getLogger(__name__)


def build_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter | None:
    """Return the configured limiter, or None when throttling is disabled."""
    if not app_settings.rate_limit_enabled:
        logger.info("rate_limit.disabled")
        return None

    return InMemorySlidingWindowRateLimiter(
        limit=app_settings.rate_limit_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
