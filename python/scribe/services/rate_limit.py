"""Per-key fixed-window rate limiting.

Every budget uses a one-minute window. Keys combine an operation class with
an identity, e.g. `tokens:{user_id}` or `chunks:{token_id}`.

Backends:
- InMemoryRateLimiter: process-local counters (default). Not shared across
  instances; each process enforces its own window.
- RedisRateLimiter: shared INCR/EXPIRE counter under `rate:{key}`.
  Fails open if Redis is unavailable.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from scribe.errors import RateLimitedError
from scribe.logging import get_logger
from scribe.services.redact import safe_kv

logger = get_logger(__name__)

WINDOW_SECONDS = 60

# Budgets per window
TOKENS_PER_MINUTE = 10
SESSIONS_PER_MINUTE = 30
CHUNKS_PER_TOKEN_PER_MINUTE = 120
CHUNKS_PER_USER_PER_MINUTE = 300
SUMMARIZE_PER_MINUTE = 10


class RateLimiter(ABC):
    """Admit-or-reject interface shared by all backends."""

    @abstractmethod
    def admit(self, key: str, max_per_window: int) -> bool:
        """Count one hit against key; return False once the budget is spent."""

    def enforce(
        self, key: str, max_per_window: int, message: str = "Rate limit exceeded"
    ) -> None:
        """Admit or raise.

        Raises:
            RateLimitedError: If the key's budget for the current window is spent.
        """
        if not self.admit(key, max_per_window):
            limit_class = key.split(":", 1)[0]
            logger.warning(
                "rate_limit.blocked",
                **safe_kv(limit_class=limit_class, limit=max_per_window),
            )
            raise RateLimitedError(message=message)


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiter):
    """Process-local fixed-window counter.

    Sync services run on threadpool workers, so the counter map is guarded
    by a lock.
    """

    def __init__(
        self,
        window_seconds: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def admit(self, key: str, max_per_window: int) -> bool:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self._window_seconds)
                return True
            if window.count < max_per_window:
                window.count += 1
                return True
            return False

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimiter(RateLimiter):
    """Fixed-window counter shared through Redis.

    The first hit in a window sets the key's TTL; the key expiring is the
    window reset.
    """

    def __init__(self, redis_client, window_seconds: int = WINDOW_SECONDS):
        """Initialize rate limiter.

        Args:
            redis_client: Redis client instance (sync).
            window_seconds: Window length in seconds.
        """
        self._redis = redis_client
        self._window_seconds = window_seconds

    def admit(self, key: str, max_per_window: int) -> bool:
        redis_key = f"rate:{key}"
        try:
            pipe = self._redis.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, self._window_seconds, nx=True)
            count, _ = pipe.execute()
        except Exception as e:
            logger.warning("rate_limit_check_failed", limit_class=key.split(":", 1)[0], error=str(e))
            return True  # Fail open

        return int(count) <= max_per_window


# Global rate limiter instance (replaced at app startup when Redis is configured)
_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance.

    Defaults to a process-local limiter when none has been installed.
    """
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = InMemoryRateLimiter()
    return _rate_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    """Set the global rate limiter instance.

    Called by app startup to configure Redis, and by tests for isolation.
    """
    global _rate_limiter
    _rate_limiter = limiter
