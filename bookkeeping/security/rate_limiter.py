"""Sliding window rate limiting for the authentication endpoints."""

from __future__ import annotations

import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Protocol

from ..config import Settings

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool: ...


class SlidingWindowRateLimiter:
    """Thread-safe in-process sliding window limiter.

    Keys whose attempts have all aged out of the window are evicted, both when
    the key is next checked and by a sweep that runs at most once per window,
    so the number of tracked keys is bounded by the traffic of one window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._attempts: dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._attempts)

    def allow(self, key: str) -> bool:
        """Return ``True`` and record the attempt when ``key`` is under the limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep > self._window:
                self._sweep(now)
            attempts = self._attempts.get(key)
            if attempts is not None:
                self._prune(attempts, now)
            if attempts and len(attempts) >= self._max_requests:
                return False
            if attempts is None:
                attempts = self._attempts[key] = deque()
            attempts.append(now)
            return True

    def _prune(self, attempts: Deque[float], now: float) -> None:
        while attempts and now - attempts[0] > self._window:
            attempts.popleft()

    def _sweep(self, now: float) -> None:
        stale = [key for key, attempts in self._attempts.items() if now - attempts[-1] > self._window]
        for key in stale:
            del self._attempts[key]
        self._last_sweep = now
        if stale:
            logger.debug("rate limiter evicted %d idle keys", len(stale))


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Instantiate the configured limiter backend, preferring Redis when reachable."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        import redis

        from .redis_rate_limiter import RedisSlidingWindowRateLimiter

        client = redis.Redis.from_url(settings.redis_url)
        try:
            client.ping()
        except redis.RedisError as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)
        else:
            logger.info("rate limiter configured for redis backend")
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
