# Copyright (c)
# SPDX-License-Identifier: MIT
"""In-process fragment cache for dev/test.

Single-key only: it has no ``fetch_multi``, so renderers drive it through the
sequential fetch adapter. Fragments are deep-copied on the way in and out so
callers never share state with the store; entries expire against the loop clock.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable, Mapping
from typing import Any

from jsonview_cache.application.interfaces.cache_port import Fragment, FragmentCachePort
from jsonview_cache.application.services.cache_keys import build_cache_key
from jsonview_cache.infrastructure.caching.fragment_cache import resolve_ttl_seconds
from jsonview_cache.infrastructure.observability.metrics import (
    observe_fragment_cache_operation,
)

__all__ = ["InMemoryFragmentCache"]


class InMemoryFragmentCache(FragmentCachePort):
    """A small, concurrency-safe in-memory fragment cache."""

    backend_name = "memory"

    def __init__(self, *, default_ttl: int = 0) -> None:
        self._store: dict[str, tuple[float | None, Fragment]] = {}
        self._lock = asyncio.Lock()
        self._default_ttl = default_ttl

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def cache_key(self, value: Any, options: Mapping[str, Any]) -> str:
        return build_cache_key(value, options)

    async def fetch(
        self,
        key: str,
        options: Mapping[str, Any],
        on_miss: Callable[[], Fragment],
    ) -> Fragment:
        """Return the live entry for ``key`` or render and store it."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        async with self._lock:
            now = loop.time()
            entry = self._store.get(key)
            if entry is not None and not options.get("force"):
                expires_at, value = entry
                if expires_at is None or expires_at > now:
                    observe_fragment_cache_operation(
                        operation="fetch",
                        backend=self.backend_name,
                        hits=1,
                        misses=0,
                        duration_s=loop.time() - start,
                    )
                    return copy.deepcopy(value)
                self._store.pop(key, None)

            value = on_miss()
            ttl = resolve_ttl_seconds(options, self._default_ttl)
            self._store[key] = (None if ttl is None else now + ttl, copy.deepcopy(value))

        observe_fragment_cache_operation(
            operation="fetch",
            backend=self.backend_name,
            hits=0,
            misses=1,
            duration_s=loop.time() - start,
        )
        return value

    async def clear(self) -> None:
        """Drop every entry."""
        async with self._lock:
            self._store.clear()
