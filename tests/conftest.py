# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass

import fakeredis.aioredis
import pytest

from jsonview_cache.config.settings import get_settings
from jsonview_cache.dependencies import rendering as rendering_deps
from jsonview_cache.infrastructure.caching import redis_client as redis_client_module


@dataclass(frozen=True)
class Person:
    """Minimal domain object keyed by ``id``."""

    id: int
    name: str


@pytest.fixture
def people() -> list[Person]:
    return [Person(1, "Ada"), Person(2, "Grace"), Person(3, "Edsger")]


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> fakeredis.aioredis.FakeRedis:
    """Wire a FakeRedis into the global client used by RedisFragmentCache."""
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client_module, "_client", fake)
    return fake


@pytest.fixture
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Re-read settings (and the cache built from them) around a test."""
    # setenv first so monkeypatch restores the original value even when
    # Settings writes JSONVIEW_TEST_MODE itself.
    monkeypatch.setenv("JSONVIEW_TEST_MODE", "0")
    monkeypatch.delenv("JSONVIEW_TEST_MODE")
    get_settings.cache_clear()
    rendering_deps._build_cache.cache_clear()
    yield
    get_settings.cache_clear()
    rendering_deps._build_cache.cache_clear()
