"""Tests for fixed-window rate limiting."""

from unittest.mock import MagicMock

import pytest

from scribe.errors import ApiErrorCode, RateLimitedError
from scribe.services.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryRateLimiter:
    def test_admits_up_to_budget(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        assert [limiter.admit("k", 3) for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        assert limiter.admit("tokens:a", 1)
        assert not limiter.admit("tokens:a", 1)
        assert limiter.admit("tokens:b", 1)

    def test_window_resets(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(window_seconds=60, clock=clock)
        assert limiter.admit("k", 1)
        assert not limiter.admit("k", 1)

        clock.now += 60
        assert not limiter.admit("k", 1)  # still inside the window boundary

        clock.now += 0.001
        assert limiter.admit("k", 1)

    def test_enforce_raises(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        limiter.enforce("chunks_user:u", 1)

        with pytest.raises(RateLimitedError) as exc_info:
            limiter.enforce("chunks_user:u", 1, "User rate limit exceeded")

        assert exc_info.value.code == ApiErrorCode.E_RATE_LIMITED
        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "User rate limit exceeded"

    def test_reset(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        limiter.admit("k", 1)
        limiter.reset()
        assert limiter.admit("k", 1)


class TestRedisRateLimiter:
    def _redis(self, count: int) -> MagicMock:
        redis = MagicMock()
        pipe = redis.pipeline.return_value
        pipe.execute.return_value = [count, True]
        return redis

    def test_under_budget(self):
        redis = self._redis(count=2)
        limiter = RedisRateLimiter(redis, window_seconds=60)

        assert limiter.admit("sessions:u", 30)

        pipe = redis.pipeline.return_value
        pipe.incr.assert_called_once_with("rate:sessions:u")
        pipe.expire.assert_called_once_with("rate:sessions:u", 60, nx=True)

    def test_over_budget(self):
        assert not RedisRateLimiter(self._redis(count=31)).admit("sessions:u", 30)

    def test_fails_open(self):
        redis = MagicMock()
        redis.pipeline.return_value.execute.side_effect = ConnectionError("down")
        assert RedisRateLimiter(redis).admit("sessions:u", 1)


class TestGlobalLimiter:
    def test_default_is_in_memory(self):
        set_rate_limiter(None)
        assert isinstance(get_rate_limiter(), InMemoryRateLimiter)

    def test_set_replaces(self):
        limiter = InMemoryRateLimiter()
        set_rate_limiter(limiter)
        assert get_rate_limiter() is limiter
