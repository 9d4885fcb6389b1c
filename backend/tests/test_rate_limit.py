# tests/test_rate_limit.py
from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.core import cache as cache_module
from app.core.cache import Cache
from app.core.rate_limit import RateLimitMiddleware, check_limit


def build_app(limit: int, trusted_proxies: list[str] | None = None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limit_per_minute=limit, store=Cache())
    if trusted_proxies is not None:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=trusted_proxies)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


def client_for(app: FastAPI, peer: str = "127.0.0.1") -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app, client=(peer, 50000))
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
async def test_requests_over_limit_get_429():
    async with client_for(build_app(3)) as c:
        for _ in range(3):
            assert (await c.get("/ping")).status_code == 200

        r = await c.get("/ping")
        assert r.status_code == 429
        assert r.json() == {"detail": "Too many requests", "limitPerMinute": 3}


@pytest.mark.asyncio
async def test_spoofed_forwarded_header_does_not_reset_the_window():
    async with client_for(build_app(1), peer="198.51.100.4") as c:
        codes = [
            (await c.get("/ping", headers={"X-Forwarded-For": f"10.0.{i // 250}.{i % 250}"})).status_code
            for i in range(50)
        ]
    assert codes[0] == 200
    assert codes.count(429) == 49


@pytest.mark.asyncio
async def test_untrusted_peer_cannot_forward():
    app = build_app(1, trusted_proxies=["10.9.9.9"])
    async with client_for(app, peer="198.51.100.4") as c:
        assert (await c.get("/ping", headers={"X-Forwarded-For": "10.0.0.1"})).status_code == 200
        assert (await c.get("/ping", headers={"X-Forwarded-For": "10.0.0.2"})).status_code == 429


@pytest.mark.asyncio
async def test_trusted_proxy_forwards_real_client():
    app = build_app(1, trusted_proxies=["10.9.9.9"])
    async with client_for(app, peer="10.9.9.9") as c:
        assert (await c.get("/ping", headers={"X-Forwarded-For": "203.0.113.7"})).status_code == 200
        assert (await c.get("/ping", headers={"X-Forwarded-For": "203.0.113.7"})).status_code == 429
        assert (await c.get("/ping", headers={"X-Forwarded-For": "203.0.113.8"})).status_code == 200


@pytest.mark.asyncio
async def test_memory_window_resets():
    store = Cache()
    assert store.backend == "memory"
    assert await check_limit("1.2.3.4", 1, store)
    assert not await check_limit("1.2.3.4", 1, store)

    await store.reset()
    assert await check_limit("1.2.3.4", 1, store)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def monotonic(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_memory_store_drops_expired_windows(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(cache_module, "time", clock)
    store = Cache()

    for i in range(200):
        await store.incr_with_ttl(f"rl:ip:10.0.0.{i}", 60)
    assert store.tracked_keys == 200

    clock.now += 61
    assert await store.incr_with_ttl("rl:ip:10.0.1.1", 60) == 1
    assert store.tracked_keys == 1
