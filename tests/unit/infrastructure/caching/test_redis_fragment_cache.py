# tests/unit/infrastructure/caching/test_redis_fragment_cache.py
from __future__ import annotations

import json
from datetime import timedelta

import pytest

from jsonview_cache.application.services.collection_renderer import (
    BatchedCollectionRenderer,
    CollectionCacheOptions,
)
from jsonview_cache.domain.exceptions.rendering import FragmentSerializationError
from jsonview_cache.infrastructure.caching.fragment_cache import (
    RedisFragmentCache,
    resolve_ttl_seconds,
)

NS = "jsonview:fragments:v1"


@pytest.mark.asyncio
async def test_fetch_stores_json_under_namespaced_key_with_ttl(fake_redis) -> None:
    """A miss renders once, stores JSON under the full key and applies TTL."""
    cache = RedisFragmentCache(namespace=NS, default_ttl=60)
    calls = 0

    def render():
        nonlocal calls
        calls += 1
        return {"id": 1}

    assert await cache.fetch("jsonview/person/1", {}, render) == {"id": 1}
    assert await cache.fetch("jsonview/person/1", {}, render) == {"id": 1}
    assert calls == 1

    full_key = f"{NS}:jsonview/person/1"
    assert json.loads(await fake_redis.get(full_key)) == {"id": 1}
    ttl = await fake_redis.ttl(full_key)
    assert 0 < ttl <= 60


@pytest.mark.asyncio
async def test_fetch_multi_mixes_hits_and_misses_in_key_order(fake_redis) -> None:
    cache = RedisFragmentCache(namespace=NS)
    await fake_redis.set(f"{NS}:k2", json.dumps({"cached": True}))
    rendered: list[str] = []

    def on_miss(key: str):
        rendered.append(key)
        return {"key": key}

    out = await cache.fetch_multi(["k1", "k2", "k3"], {"expires_in": 30}, on_miss)

    assert list(out) == ["k1", "k2", "k3"]
    assert out["k2"] == {"cached": True}
    assert rendered == ["k1", "k3"]
    assert json.loads(await fake_redis.get(f"{NS}:k3")) == {"key": "k3"}
    assert 0 < await fake_redis.ttl(f"{NS}:k1") <= 30


@pytest.mark.asyncio
async def test_fetch_multi_writes_nothing_when_a_render_fails(fake_redis) -> None:
    cache = RedisFragmentCache(namespace=NS)

    def on_miss(key: str):
        if key == "k2":
            raise RuntimeError("boom")
        return {"key": key}

    with pytest.raises(RuntimeError, match="boom"):
        await cache.fetch_multi(["k1", "k2", "k3"], {}, on_miss)

    assert await fake_redis.mget([f"{NS}:k1", f"{NS}:k2", f"{NS}:k3"]) == [None, None, None]


@pytest.mark.asyncio
async def test_fetch_multi_with_no_keys_skips_redis(fake_redis) -> None:
    assert await RedisFragmentCache().fetch_multi([], {}, lambda k: {}) == {}


@pytest.mark.asyncio
async def test_force_rerenders_and_overwrites(fake_redis) -> None:
    cache = RedisFragmentCache(namespace=NS)
    await fake_redis.set(f"{NS}:k1", json.dumps({"v": "old"}))

    out = await cache.fetch_multi(["k1"], {"force": True}, lambda k: {"v": "new"})

    assert out == {"k1": {"v": "new"}}
    assert json.loads(await fake_redis.get(f"{NS}:k1")) == {"v": "new"}


@pytest.mark.asyncio
async def test_non_positive_expiry_stores_without_ttl(fake_redis) -> None:
    cache = RedisFragmentCache(namespace=NS, default_ttl=0)

    await cache.fetch("k1", {}, lambda: {"v": 1})

    assert await fake_redis.ttl(f"{NS}:k1") == -1


@pytest.mark.asyncio
async def test_unserializable_fragment_raises(fake_redis) -> None:
    cache = RedisFragmentCache(namespace=NS)

    with pytest.raises(FragmentSerializationError):
        await cache.fetch_multi(["k1"], {}, lambda k: {"v": object()})


@pytest.mark.asyncio
async def test_renderer_round_trip_through_redis(fake_redis, people) -> None:
    """Cold cache renders every person; a warm cache renders none."""
    renderer = BatchedCollectionRenderer(RedisFragmentCache(namespace=NS))
    opts = CollectionCacheOptions(cache_enabled=True, backend_options={"expires_in": 120})
    calls: list[int] = []

    def render(person):
        calls.append(person.id)
        return {"id": person.id, "name": person.name}

    first = await renderer.render_collection(people, opts, render)
    second = await renderer.render_collection(people, opts, render)

    assert calls == [1, 2, 3]
    assert first == second == [
        {"id": 1, "name": "Ada"},
        {"id": 2, "name": "Grace"},
        {"id": 3, "name": "Edsger"},
    ]
    assert await fake_redis.exists(f"{NS}:jsonview/person/1") == 1


@pytest.mark.parametrize(
    ("options", "default", "expected"),
    [
        ({}, 300, 300),
        ({}, 0, None),
        ({"expires_in": 10}, 300, 10),
        ({"expires_in": timedelta(minutes=10)}, 300, 600),
        ({"expires_in": 0.2}, 300, 1),
        ({"expires_in": -5}, 300, None),
    ],
)
def test_resolve_ttl_seconds(options, default, expected) -> None:
    assert resolve_ttl_seconds(options, default) == expected
