"""
Rate Limiting

Sliding-window limiters behind one small interface:

    allowed = await limiter.check(key)

InMemoryRateLimiter keeps per-key timestamps in process memory. It is lost on
restart and not shared between workers, which is fine for throttling abuse.
RedisRateLimiter keeps the same window in a Redis sorted set so every worker
process sees one count.
"""

import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from redis.asyncio import Redis


class RateLimiter:
    """Interface: check(key) -> True when the call is allowed."""

    def __init__(self, limit: int, window_seconds: float = 60.0):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds

    async def check(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiter):
    """Process-local sliding window log."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(limit, window_seconds)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    async def check(self, key: str) -> bool:
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        hits = self._hits[key]

        # Drop hits that slid out of the window
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

        if len(hits) >= self.limit:
            return False

        hits.append(now)
        return True

    def _sweep(self, now: float) -> None:
        """Forget keys whose hits have all left the window."""
        cutoff = now - self.window_seconds
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]
        self._last_sweep = now


class RedisRateLimiter(RateLimiter):
    """Sliding window shared through a Redis sorted set per key."""

    def __init__(
        self,
        redis: Redis,
        limit: int,
        window_seconds: float = 60.0,
        prefix: str = "ratelimit",
    ):
        super().__init__(limit, window_seconds)
        self.redis = redis
        self.prefix = prefix

    async def check(self, key: str) -> bool:
        redis_key = f"{self.prefix}:{key}"
        now = time.time()
        member = f"{now}:{uuid.uuid4().hex}"

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(redis_key, 0, now - self.window_seconds)
            pipe.zadd(redis_key, {member: now})
            pipe.zcard(redis_key)
            pipe.expire(redis_key, int(self.window_seconds) + 1)
            _, _, count, _ = await pipe.execute()

        if count > self.limit:
            # Rejected calls do not occupy the window
            await self.redis.zrem(redis_key, member)
            return False
        return True
