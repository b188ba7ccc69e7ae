"""API key authentication for admin routes.

A single static secret (``APP_API_KEY``) guards every write. The gate checks,
in order:

1. a key is present at all;
2. the key still has rate-limit budget;
3. the key equals the configured secret.

Throttling before the equality check means wrong guesses spend budget too,
which slows down brute-forcing the secret.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.errors import AuthenticationAppError, RateLimitAppError

logger = logging.getLogger(__name__)


def hash_key(key: str) -> str:
    """Short, non-reversible fingerprint of a key for logs."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class AuthGate:
    """Validate presented API keys against the configured secret.

    Args:
        api_key: The configured secret. ``None`` or empty rejects every key.
        rate_limiter: Limiter consulted for each non-empty key, or None to
            disable throttling.
        include_rate_limit_headers: Attach limit metadata to 429 errors.
    """

    def __init__(
        self,
        api_key: str | None,
        rate_limiter: AbstractRateLimiter | None,
        *,
        include_rate_limit_headers: bool = True,
    ) -> None:
        self._api_key = api_key or ""
        self._rate_limiter = rate_limiter
        self._include_headers = include_rate_limit_headers

    def check(self, presented_key: str | None) -> None:
        """Raise unless the presented key may use admin routes.

        Raises:
            AuthenticationAppError: Key missing or wrong.
            RateLimitAppError: Key exceeded its request budget.
        """
        if not presented_key:
            logger.warning("auth.missing_key", extra={"api_key_present": False})
            raise AuthenticationAppError(
                code="missing_api_key",
                message="API key is required",
            )

        key_hash = hash_key(presented_key)
        self._enforce_rate_limit(presented_key, key_hash)

        if not self._api_key:
            logger.error(
                "auth.not_configured",
                extra={"hint": "Set APP_API_KEY to enable admin routes"},
            )
            raise AuthenticationAppError(
                code="invalid_api_key",
                message="Invalid API key",
            )

        if not hmac.compare_digest(presented_key.encode(), self._api_key.encode()):
            logger.warning("auth.invalid_key", extra={"api_key_hash": key_hash})
            raise AuthenticationAppError(
                code="invalid_api_key",
                message="Invalid API key",
            )

        logger.debug("auth.success", extra={"api_key_hash": key_hash})

    def _enforce_rate_limit(self, key: str, key_hash: str) -> None:
        if self._rate_limiter is None:
            return

        result = self._rate_limiter.consume(key)
        if result.allowed:
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "api_key_hash": key_hash,
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        details = None
        if self._include_headers:
            details = {
                "retry_after": result.retry_after_seconds or 0,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
            }
        raise RateLimitAppError(
            code="rate_limited",
            message="Rate limit exceeded. Please try again later.",
            details=details,
        )


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


async def require_api_key(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding admin routes.

    Usage:
        @router.post("/posts", dependencies=[Depends(require_api_key)])
    """
    get_auth_gate(request).check(x_api_key)
