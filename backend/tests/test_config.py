# tests/test_config.py
from __future__ import annotations

from app.core.config import Settings


def test_forwarded_allow_ips_are_split():
    s = Settings(DATABASE_URL_ASYNC="sqlite+aiosqlite://", FORWARDED_ALLOW_IPS=" 10.0.0.1, 10.0.0.2 ,")
    assert s.forwarded_allow_ips_list == ["10.0.0.1", "10.0.0.2"]


def test_port_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert Settings().PORT == 8080


def test_only_live_keys_are_declared():
    assert "REDIS_TTL" not in Settings.model_fields
    assert "FORWARDED_ALLOW_IPS" in Settings.model_fields
