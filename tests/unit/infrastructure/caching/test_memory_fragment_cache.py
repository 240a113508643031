# tests/unit/infrastructure/caching/test_memory_fragment_cache.py
from __future__ import annotations

import asyncio

import pytest

from jsonview_cache.application.interfaces.cache_port import (
    BatchFragmentCachePort,
    FragmentCachePort,
)
from jsonview_cache.application.services.collection_renderer import (
    BatchedCollectionRenderer,
    CollectionCacheOptions,
)
from jsonview_cache.infrastructure.caching.memory_cache import InMemoryFragmentCache


def test_memory_cache_is_single_key_only() -> None:
    cache = InMemoryFragmentCache()
    assert isinstance(cache, FragmentCachePort)
    assert not isinstance(cache, BatchFragmentCachePort)


@pytest.mark.asyncio
async def test_fetch_computes_once_and_reuses() -> None:
    cache = InMemoryFragmentCache()
    calls = 0

    def render():
        nonlocal calls
        calls += 1
        return {"n": calls}

    assert await cache.fetch("k", {}, render) == {"n": 1}
    assert await cache.fetch("k", {}, render) == {"n": 1}
    assert calls == 1
    assert "k" in cache


@pytest.mark.asyncio
async def test_entries_expire() -> None:
    cache = InMemoryFragmentCache()
    await cache.fetch("k", {"expires_in": 1}, lambda: "old")

    await asyncio.sleep(1.05)

    assert await cache.fetch("k", {}, lambda: "new") == "new"


@pytest.mark.asyncio
async def test_force_and_clear() -> None:
    cache = InMemoryFragmentCache()
    await cache.fetch("k", {}, lambda: "old")

    assert await cache.fetch("k", {"force": True}, lambda: "new") == "new"

    await cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_miss_failure_stores_nothing() -> None:
    cache = InMemoryFragmentCache()

    def boom():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await cache.fetch("k", {}, boom)
    assert "k" not in cache


@pytest.mark.asyncio
async def test_mutating_a_returned_fragment_leaves_the_stored_one_intact(people) -> None:
    cache = InMemoryFragmentCache()
    renderer = BatchedCollectionRenderer(cache)
    opts = CollectionCacheOptions(cache_enabled=True)
    calls: list[int] = []

    def render(person):
        calls.append(person.id)
        return {"id": person.id, "name": person.name, "tags": []}

    first = await renderer.render_collection(people, opts, render)
    first[0]["name"] = "X"
    first[0]["tags"].append("edited")

    second = await renderer.render_collection(people, opts, render)
    second[1]["name"] = "Y"
    third = await renderer.render_collection(people, opts, render)

    assert calls == [1, 2, 3]
    assert second[0] == {"id": 1, "name": "Ada", "tags": []}
    assert third[1] == {"id": 2, "name": "Grace", "tags": []}
