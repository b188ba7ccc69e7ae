"""Unit tests for the API key auth gate."""

from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import RateLimitResult
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.auth import AuthGate, hash_key, require_api_key
from app.core.errors import AuthenticationAppError, RateLimitAppError

SECRET = "s3cret-key"


@pytest.fixture
def limiter() -> InMemorySlidingWindowRateLimiter:
    return InMemorySlidingWindowRateLimiter(
        limit=3, window_seconds=60, clock=Mock(return_value=1_000.0)
    )


@pytest.fixture
def gate(limiter) -> AuthGate:
    return AuthGate(SECRET, limiter)


class TestAuthGate:
    @pytest.mark.parametrize("key", [None, ""])
    def test_missing_key_is_unauthorized(self, gate: AuthGate, key) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            gate.check(key)

        assert exc_info.value.code == "missing_api_key"

    def test_missing_key_does_not_touch_limiter(self) -> None:
        limiter = Mock()
        gate = AuthGate(SECRET, limiter)

        with pytest.raises(AuthenticationAppError):
            gate.check("")

        limiter.consume.assert_not_called()

    def test_wrong_key_is_unauthorized(self, gate: AuthGate) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            gate.check("wrong-key")

        assert exc_info.value.code == "invalid_api_key"

    def test_correct_key_passes(self, gate: AuthGate) -> None:
        gate.check(SECRET)

    def test_correct_key_beyond_ceiling_is_rate_limited(self, gate: AuthGate) -> None:
        for _ in range(3):
            gate.check(SECRET)

        with pytest.raises(RateLimitAppError) as exc_info:
            gate.check(SECRET)

        assert exc_info.value.code == "rate_limited"
        assert exc_info.value.details["limit"] == 3
        assert exc_info.value.details["retry_after"] > 0

    def test_wrong_guesses_are_throttled_too(self, gate: AuthGate) -> None:
        for _ in range(3):
            with pytest.raises(AuthenticationAppError):
                gate.check("guess")

        with pytest.raises(RateLimitAppError):
            gate.check("guess")

    def test_rate_check_runs_before_equality(self) -> None:
        limiter = Mock()
        limiter.consume.return_value = RateLimitResult(
            allowed=False, limit=1, remaining=0, reset_at=1_060, retry_after_seconds=60
        )
        gate = AuthGate(SECRET, limiter)

        with pytest.raises(RateLimitAppError):
            gate.check("wrong-key")

        limiter.consume.assert_called_once_with("wrong-key")

    def test_headers_can_be_disabled(self, limiter) -> None:
        gate = AuthGate(SECRET, limiter, include_rate_limit_headers=False)
        for _ in range(3):
            gate.check(SECRET)

        with pytest.raises(RateLimitAppError) as exc_info:
            gate.check(SECRET)

        assert exc_info.value.details is None

    @pytest.mark.parametrize("configured", [None, ""])
    def test_unconfigured_secret_rejects_every_key(self, configured) -> None:
        gate = AuthGate(configured, None)

        with pytest.raises(AuthenticationAppError):
            gate.check("anything")

    def test_no_limiter_means_no_throttling(self) -> None:
        gate = AuthGate(SECRET, None)

        for _ in range(200):
            gate.check(SECRET)


def test_hash_key_is_short_and_stable() -> None:
    assert hash_key("abc") == hash_key("abc")
    assert len(hash_key("abc")) == 16
    assert "abc" not in hash_key("abc")


class TestRequireApiKeyDependency:
    @staticmethod
    def _request(gate: AuthGate) -> Mock:
        request = Mock()
        request.app.state.auth_gate = gate
        return request

    @pytest.mark.asyncio
    async def test_accepts_valid_key(self, gate: AuthGate) -> None:
        await require_api_key(self._request(gate), x_api_key=SECRET)

    @pytest.mark.asyncio
    async def test_rejects_missing_header(self, gate: AuthGate) -> None:
        with pytest.raises(AuthenticationAppError):
            await require_api_key(self._request(gate), x_api_key=None)
