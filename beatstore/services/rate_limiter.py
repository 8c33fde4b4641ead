"""
Rate Limiter Service

Coarse abuse guard for the public payment, download and offer endpoints.
Implements:
- In-memory fixed window counter per key (default, per process)
- Redis sorted-set sliding window shared between processes
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import redis.asyncio as redis

from beatstore.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # Unix timestamp
    retry_after: Optional[int] = None  # Seconds until retry


class RateLimitBackend(ABC):
    """Counts hits for a key inside a window."""

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        pass

    async def close(self):
        pass


class MemoryRateLimitBackend(RateLimitBackend):
    """
    Fixed window counter held in process memory.

    A key's window opens on its first hit and closes ``window_seconds``
    later; the next hit after that opens a fresh window. Counters are lost
    on restart.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            count, reset_at = self._windows.get(key, (0, 0.0))

            if count == 0 or now > reset_at:
                reset_at = now + window_seconds
                self._windows[key] = (1, reset_at)
                self._prune(now)
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=max(0, limit - 1),
                    reset_at=int(reset_at),
                )

            if count >= limit:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_at=int(reset_at),
                    retry_after=max(1, int(reset_at - now)),
                )

            count += 1
            self._windows[key] = (count, reset_at)
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - count),
                reset_at=int(reset_at),
            )

    def _prune(self, now: float):
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at < now]
        for k in expired:
            del self._windows[k]


class RedisRateLimitBackend(RateLimitBackend):
    """
    Redis-based sliding window.

    Uses a sorted set per key to track request timestamps.
    """

    def __init__(self, redis_url: str = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[redis.Redis] = None

    async def get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        r = await self.get_redis()
        redis_key = f"ratelimit:{key}"
        now = datetime.now(timezone.utc).timestamp()
        window_start = now - window_seconds

        pipe = r.pipeline()

        # Remove old entries outside the window
        pipe.zremrangebyscore(redis_key, 0, window_start)

        # Count current requests in window
        pipe.zcard(redis_key)

        # Add current request
        pipe.zadd(redis_key, {str(now): now})

        pipe.expire(redis_key, window_seconds * 2)

        results = await pipe.execute()
        current_count = results[1]

        remaining = max(0, limit - current_count - 1)
        reset_at = int(now + window_seconds)

        if current_count >= limit:
            # Over limit - remove the request we just added
            await r.zrem(redis_key, str(now))

            oldest = await r.zrange(redis_key, 0, 0, withscores=True)
            retry_after = int(oldest[0][1] + window_seconds - now) if oldest else window_seconds

            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, retry_after),
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=remaining,
            reset_at=reset_at,
        )


class RateLimiter:
    """Applies per-scope limits over a backend."""

    def __init__(self, backend: RateLimitBackend = None, enabled: bool = None):
        self.backend = backend or MemoryRateLimitBackend()
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled

    async def check(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_seconds: int = None,
    ) -> RateLimitResult:
        """
        Record a hit for ``identifier`` under ``scope``.

        Args:
            scope: Endpoint family, e.g. "verify" or "download"
            identifier: Client IP, e-mail, or a combination
            limit: Maximum hits per window
            window_seconds: Window length, defaults to RATE_LIMIT_WINDOW_SECONDS

        Returns:
            RateLimitResult with allowed status and metadata
        """
        window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        if not self.enabled:
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit,
                reset_at=0,
            )

        result = await self.backend.hit(f"{scope}:{identifier}", limit, window_seconds)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {scope} by {identifier}")
        return result

    async def close(self):
        await self.backend.close()


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        if settings.RATE_LIMIT_BACKEND == "redis":
            backend = RedisRateLimitBackend()
        else:
            backend = MemoryRateLimitBackend()
        _rate_limiter = RateLimiter(backend)
    return _rate_limiter


async def close_rate_limiter():
    """Close the global rate limiter."""
    global _rate_limiter
    if _rate_limiter:
        await _rate_limiter.close()
        _rate_limiter = None
