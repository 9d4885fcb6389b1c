from __future__ import annotations

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.cache import Cache, cache
from app.core.config import settings

logger = structlog.get_logger(__name__)

WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    """
    The socket peer. Behind a reverse proxy the peer is rewritten from
    X-Forwarded-For by ProxyHeadersMiddleware, and only for trusted proxies.
    """
    return request.client.host if request.client else "unknown"


async def check_limit(key: str, limit: int, store: Cache = cache) -> bool:
    count = await store.incr_with_ttl(f"rl:ip:{key}", WINDOW_SECONDS)
    return count <= limit


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed one-minute window per client IP."""

    def __init__(self, app, limit_per_minute: int | None = None, store: Cache | None = None):
        super().__init__(app)
        self.limit = limit_per_minute or settings.RATE_LIMIT_PER_MINUTE
        self.store = store or cache

    async def dispatch(self, request: Request, call_next):
        ip = client_ip(request)
        if not await check_limit(ip, self.limit, self.store):
            logger.warning("rate_limit.exceeded", client_ip=ip, path=request.url.path)
            return JSONResponse(
                {"detail": "Too many requests", "limitPerMinute": self.limit},
                status_code=429,
            )
        return await call_next(request)
