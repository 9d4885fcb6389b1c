from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
import app.models  # noqa: F401  # force model registration

from app.api.v1.auth import router as auth_router
from app.api.v1.tenants import router as tenants_router
from app.api.v1.school_years import router as school_years_router
from app.api.v1.tenant_access import router as tenant_access_router
from app.api.v1.waitlist import router as waitlist_router
from app.core.cache import cache
from app.core.rate_limit import RateLimitMiddleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app.startup", environment=settings.ENVIRONMENT, cache_backend=cache.backend)
    yield
    await cache.close()
    logger.info("app.shutdown")


def create_application() -> FastAPI:
    configure_logging()

    app = FastAPI(title="ScholaXpert API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(RateLimitMiddleware, limit_per_minute=settings.RATE_LIMIT_PER_MINUTE)
    # Outermost: resolves the real client address before the limiter keys on it.
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips_list)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "scholaxpert"}

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(tenants_router, prefix="/api/v1")
    app.include_router(school_years_router, prefix="/api/v1")
    app.include_router(tenant_access_router, prefix="/api/v1")
    app.include_router(waitlist_router, prefix="/api/v1")

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    # Forwarded headers are applied by the app itself (ProxyHeadersMiddleware).
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT, proxy_headers=False)
