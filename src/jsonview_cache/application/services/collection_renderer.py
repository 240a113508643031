# Copyright (c)
# SPDX-License-Identifier: MIT
"""Batched, cache-aware collection rendering.

Scope:
    * Derive one cache key per item (optionally using an explicit key).
    * Fetch every key from the fragment cache in a single batched call, or
      one key at a time when the backend has no batched capability.
    * Render only the misses; the backend stores them.
    * Return the fragments as one flat list.

Behavior:
    * When caching is disabled every item is rendered directly, in input order.
    * Two items deriving the same key collapse into one entry: the later item
      wins and is the only one rendered.
    * Fragment order on the cached path is whatever the backend returns.
    * Render and backend failures propagate unchanged and abort the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from jsonview_cache.application.interfaces.cache_port import (
    BatchFragmentCachePort,
    Fragment,
    FragmentCachePort,
)

__all__ = [
    "BatchedCollectionRenderer",
    "BatchedFetch",
    "CollectionCacheOptions",
    "FetchStrategy",
    "SequentialFetch",
    "select_fetch_strategy",
]

logger = logging.getLogger(__name__)

type RenderFn = Callable[[Any], Fragment]


@dataclass(frozen=True)
class CollectionCacheOptions:
    """Per-call options for collection rendering.

    Attributes:
        cache_enabled: Whether the cached path may be used at all. Supplied by
            the host environment (e.g. ``Settings.perform_caching``).
        key: Explicit key override, either a static value or a callable
            applied to each item.
        backend_options: Forwarded verbatim to the cache backend
            (e.g. ``expires_in``, ``namespace``, ``version``).
    """

    cache_enabled: bool = False
    key: Any | Callable[[Any], Any] | None = None
    backend_options: Mapping[str, Any] = field(default_factory=dict)


class FetchStrategy(Protocol):
    """How a keyed batch is fetched from a backend."""

    name: str

    async def fetch(
        self,
        keyed: Mapping[str, Any],
        options: Mapping[str, Any],
        render_fn: RenderFn,
    ) -> Mapping[str, Fragment] | Sequence[Fragment]: ...


class BatchedFetch:
    """Single round-trip through a backend's native ``fetch_multi``."""

    name = "batched"

    def __init__(self, cache: BatchFragmentCachePort) -> None:
        self._cache = cache

    async def fetch(
        self,
        keyed: Mapping[str, Any],
        options: Mapping[str, Any],
        render_fn: RenderFn,
    ) -> Mapping[str, Fragment] | Sequence[Fragment]:
        def on_miss(key: str) -> Fragment:
            return render_fn(keyed[key])

        return await self._cache.fetch_multi(list(keyed), options, on_miss)


class SequentialFetch:
    """Adapter looping single-key ``fetch`` calls, in key order."""

    name = "sequential"

    def __init__(self, cache: FragmentCachePort) -> None:
        self._cache = cache

    async def fetch(
        self,
        keyed: Mapping[str, Any],
        options: Mapping[str, Any],
        render_fn: RenderFn,
    ) -> Mapping[str, Fragment] | Sequence[Fragment]:
        results: list[Fragment] = []
        for key, item in keyed.items():
            # Bind ``item`` now; the callback may run after the loop advances.
            results.append(
                await self._cache.fetch(key, options, lambda item=item: render_fn(item))
            )
        return results


def select_fetch_strategy(cache: FragmentCachePort) -> FetchStrategy:
    """Pick the batched strategy when the backend supports it.

    Args:
        cache: Fragment cache backend.

    Returns:
        FetchStrategy: ``BatchedFetch`` or ``SequentialFetch``.
    """
    if isinstance(cache, BatchFragmentCachePort):
        return BatchedFetch(cache)
    return SequentialFetch(cache)


class BatchedCollectionRenderer:
    """Render collections through a fragment cache.

    Args:
        cache: Backend implementing at least :class:`FragmentCachePort`.
    """

    def __init__(self, cache: FragmentCachePort) -> None:
        self._cache = cache

    @property
    def cache(self) -> FragmentCachePort:
        return self._cache

    async def render_collection(
        self,
        items: Iterable[Any],
        options: CollectionCacheOptions,
        render_fn: RenderFn,
    ) -> list[Fragment]:
        """Render ``items``, reusing cached fragments when caching is enabled.

        Args:
            items: Items to render.
            options: Caching flag, explicit key and backend options.
            render_fn: Renders one item to a fragment.

        Returns:
            Flat list of fragments.
        """
        if not options.cache_enabled:
            return self.render_uncached(items, render_fn)

        backend_options = dict(options.backend_options)
        keyed = self._keys_to_collection_map(items, options.key, backend_options)
        strategy = select_fetch_strategy(self._cache)

        logger.debug(
            "collection_cache.fetch",
            extra={
                "extra": {
                    "strategy": strategy.name,
                    "distinct_keys": len(keyed),
                }
            },
        )

        results = await strategy.fetch(keyed, backend_options, render_fn)
        return self._process_collection_results(results)

    async def render_collection_if(
        self,
        condition: bool,
        items: Iterable[Any],
        options: CollectionCacheOptions,
        render_fn: RenderFn,
    ) -> list[Fragment]:
        """Use the cached path only when ``condition`` holds."""
        if condition:
            return await self.render_collection(items, options, render_fn)
        return self.render_uncached(items, render_fn)

    @staticmethod
    def render_uncached(items: Iterable[Any], render_fn: RenderFn) -> list[Fragment]:
        """Render every item directly, in input order."""
        return [render_fn(item) for item in items]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _keys_to_collection_map(
        self,
        items: Iterable[Any],
        key: Any | Callable[[Any], Any] | None,
        backend_options: Mapping[str, Any],
    ) -> dict[str, Any]:
        keyed: dict[str, Any] = {}
        for item in items:
            item_key = key(item) if callable(key) else key
            unset = item_key is None or item_key is False
            cache_input = item if unset else (item_key, item)
            # Later items overwrite earlier ones on key collision.
            keyed[self._cache.cache_key(cache_input, backend_options)] = item
        return keyed

    @staticmethod
    def _process_collection_results(
        results: Mapping[str, Fragment] | Sequence[Fragment],
    ) -> list[Fragment]:
        if isinstance(results, Mapping):
            return list(results.values())
        return list(results)
