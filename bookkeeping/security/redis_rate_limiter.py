"""Redis-backed sliding window rate limiter."""

from __future__ import annotations

import time
import uuid
from typing import Final

from redis import Redis
from redis.exceptions import ResponseError, WatchError


class RedisSlidingWindowRateLimiter:
    """Limiter shared across workers, one sorted set of attempt timestamps per key.

    The prune, count and add for one attempt run as a single Lua script. Servers
    without scripting get the same steps in an optimistic ``WATCH``/``MULTI``
    transaction that is retried when another worker touches the key first.
    """

    _LUA_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local window_ms = tonumber(ARGV[1])
    local max_requests = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])
    local member = ARGV[4]

    redis.call('ZREMRANGEBYSCORE', key, 0, now_ms - window_ms)
    if redis.call('ZCARD', key) >= max_requests then
        return 0
    end
    redis.call('ZADD', key, now_ms, member)
    redis.call('PEXPIRE', key, window_ms)
    return 1
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "bookkeeping:rate",
    ) -> None:
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._script = client.register_script(self._LUA_SCRIPT)

    def allow(self, key: str) -> bool:
        """Return ``True`` when ``key`` is still within the shared rate limit."""
        now_ms = int(time.time() * 1000)
        redis_key = f"{self._key_prefix}:{key}"
        member = f"{now_ms}:{uuid.uuid4().hex}"
        try:
            result = self._script(
                keys=[redis_key], args=[self._window_ms, self._max_requests, now_ms, member]
            )
        except ResponseError as exc:
            message = str(exc).lower()
            if "unknown command `evalsha`" in message or "unknown command `eval`" in message:
                return self._allow_with_transaction(redis_key, now_ms, member)
            raise
        return int(result) == 1

    def _allow_with_transaction(self, redis_key: str, now_ms: int, member: str) -> bool:
        window_start = now_ms - self._window_ms
        with self._client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(redis_key)
                    current = pipe.zcount(redis_key, f"({window_start}", "+inf")
                    if int(current) >= self._max_requests:
                        return False
                    pipe.multi()
                    pipe.zremrangebyscore(redis_key, 0, window_start)
                    pipe.zadd(redis_key, {member: now_ms})
                    pipe.pexpire(redis_key, self._window_ms)
                    pipe.execute()
                    return True
                except WatchError:
                    continue
