from __future__ import annotations

import asyncio
import time
from typing import Optional

import structlog
from redis import asyncio as aioredis

from app.core.config import settings

logger = structlog.get_logger(__name__)


class Cache:
    """
    Counter store shared by the rate limiter.

    Redis when REDIS_URL is set; otherwise an in-process fixed-window map
    (single worker only).
    """

    def __init__(self, url: Optional[str] = None):
        self.r: Optional[aioredis.Redis] = None
        if url:
            self.r = aioredis.from_url(url, decode_responses=True)
        self._counts: dict[str, int] = {}
        self._expires: dict[str, float] = {}
        self._next_sweep = 0.0
        self._lock = asyncio.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self.r is not None else "memory"

    async def incr_with_ttl(self, key: str, ttl: int) -> int:
        if self.r is None:
            now = time.monotonic()
            async with self._lock:
                if now >= self._next_sweep:
                    self._sweep(now)
                    self._next_sweep = now + ttl
                if self._expires.get(key, 0) < now:
                    self._expires[key] = now + ttl
                    self._counts[key] = 0
                self._counts[key] += 1
                return self._counts[key]

        async with self.r.pipeline(transaction=True) as p:
            p.incr(key)
            p.expire(key, ttl, nx=True)
            count, _ = await p.execute()
        return int(count)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock. Drops windows that ended; a returning key starts fresh anyway.
        for key in [k for k, expires in self._expires.items() if expires < now]:
            del self._expires[key]
            self._counts.pop(key, None)

    @property
    def tracked_keys(self) -> int:
        return len(self._counts)

    async def reset(self) -> None:
        async with self._lock:
            self._counts.clear()
            self._expires.clear()

    async def close(self) -> None:
        if self.r is not None:
            await self.r.aclose()
            logger.info("cache.closed", backend="redis")


cache = Cache(settings.REDIS_URL or None)
