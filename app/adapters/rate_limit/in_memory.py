"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the timestamp map; nothing blocks under it.
- Keys are never evicted, so the map grows with the number of distinct keys.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Count requests per key over the trailing ``window_seconds``.

    Every allowed request records its timestamp. A request is allowed while
    fewer than ``limit`` timestamps fall inside the window ending now, so the
    budget frees up gradually instead of all at once on a boundary.
    """

    def __init__(
        self,
        *,
        limit: int = 60,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Length of the trailing window in seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Check the trailing window for ``key`` and record the request if allowed.

        Args:
            key: Unique identifier for rate limiting (e.g., API key).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)

            if len(hits) + cost <= self._limit:
                hits.extend([now] * cost)
                oldest = hits[0]
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - len(hits),
                    reset_at=int(math.ceil(oldest + self._window_seconds)),
                    retry_after_seconds=None,
                )

            oldest = hits[0] if hits else now
            remaining = max(0, self._limit - len(hits))

        expires_at = oldest + self._window_seconds
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=remaining,
            reset_at=int(math.ceil(expires_at)),
            retry_after_seconds=max(1, int(math.ceil(expires_at - now))),
        )
