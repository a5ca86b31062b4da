"""Fixed-window request throttling for the public API."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any

import redis

from glocal.core.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of counting one request against a window."""

    allowed: bool
    remaining: int
    retry_after: int


class RateLimitService:
    """Counts requests per key in fixed windows.

    Counters live in Redis when a URL is configured; otherwise, or once Redis
    fails, they are kept in an in-process cache.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis: Any = None
        if redis_url:
            self._redis = redis.from_url(redis_url)
        self._windows: dict[str, list[int]] = {}
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitDecision:
        """Record a request for ``key`` and report whether it is allowed."""
        now = time.time()
        bucket = int(now // window_seconds)
        window_end = (bucket + 1) * window_seconds
        retry_after = max(1, math.ceil(window_end - now))

        count = self._increment(f"ratelimit:{key}:{bucket}", window_seconds, window_end)
        remaining = max(0, limit - count)
        return RateLimitDecision(
            allowed=count <= limit,
            remaining=remaining,
            retry_after=retry_after,
        )

    def reset(self) -> None:
        """Forget all in-process counters."""
        with self._lock:
            self._windows.clear()

    def _increment(self, window_key: str, window_seconds: int, window_end: int) -> int:
        if self._redis is not None:
            try:
                pipe = self._redis.pipeline()
                pipe.incr(window_key)
                pipe.expire(window_key, window_seconds)
                count, _ = pipe.execute()
                return int(count)
            except redis.RedisError as exc:
                logger.warning("Rate limit backend unavailable, using local counters: %s", exc)
                self._redis = None

        now = int(time.time())
        with self._lock:
            # Drop windows that have already closed.
            expired = [key for key, (_, end) in self._windows.items() if end <= now]
            for key in expired:
                del self._windows[key]
            entry = self._windows.setdefault(window_key, [0, window_end])
            entry[0] += 1
            return entry[0]


_SERVICE: RateLimitService | None = None


def get_rate_limit_service() -> RateLimitService:
    """Return the shared rate limit service."""
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = RateLimitService(settings.rate_limit_redis_url)
    return _SERVICE
