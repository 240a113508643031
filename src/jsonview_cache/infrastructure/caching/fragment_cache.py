# Copyright (c)
# SPDX-License-Identifier: MIT
"""Fragment Cache (Redis-backed).

Synopsis:
    Implements the batched fragment cache port on top of the shared Redis
    client provided by `infrastructure/caching/redis_client.py`.

Design:
    * Uses the global Redis client via `get_redis_client()`.
    * Pure JSON (utf-8) serialization; no pickle.
    * Key policy:
        - Namespace prefix owned by the store: `jsonview:fragments:v1`
        - Tail derived by `build_cache_key`: `[namespace/]jsonview[/version]/<item key>`
    * `fetch_multi` issues one MGET, renders every miss in key order, then
      writes the rendered fragments. A render failure aborts before anything
      is written.

Options understood:
    * ``expires_in``: seconds (int/float) or ``timedelta``; ``<= 0`` stores
      without expiry. Defaults to the store's ``default_ttl``.
    * ``force``: skip the read and re-render every key.
    * ``namespace`` / ``version``: shape the key (see `cache_keys`).

Layer:
    infrastructure/caching

See Also:
    - jsonview_cache.application.interfaces.cache_port.BatchFragmentCachePort
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import timedelta
from typing import Any

from jsonview_cache.application.interfaces.cache_port import BatchFragmentCachePort, Fragment
from jsonview_cache.application.services.cache_keys import build_cache_key
from jsonview_cache.domain.exceptions.rendering import FragmentSerializationError
from jsonview_cache.infrastructure.caching.redis_client import get_redis_client
from jsonview_cache.infrastructure.logging.logger import get_json_logger
from jsonview_cache.infrastructure.observability.metrics import (
    observe_fragment_cache_operation,
)

__all__ = ["RedisFragmentCache", "resolve_ttl_seconds"]

_LOGGER = get_json_logger(__name__)


def resolve_ttl_seconds(options: Mapping[str, Any], default_ttl: int) -> int | None:
    """Resolve the expiry for a write.

    Args:
        options: Caller options; ``expires_in`` is read.
        default_ttl: Store default in seconds (``0`` means no expiry).

    Returns:
        Positive whole seconds, or ``None`` for no expiry.
    """
    raw = options.get("expires_in")
    if raw is None:
        seconds = float(default_ttl)
    elif isinstance(raw, timedelta):
        seconds = raw.total_seconds()
    else:
        seconds = float(raw)
    if seconds <= 0:
        return None
    return max(1, int(seconds))


def _dumps(key: str, value: Fragment) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise FragmentSerializationError(
            f"Fragment for {key!r} is not JSON-serializable: {exc}",
            details={"key": key},
        ) from exc


class RedisFragmentCache(BatchFragmentCachePort):
    """Redis-backed, batch-capable fragment cache.

    Keys are stored as ``{namespace}:{tail}`` where the tail comes from
    :meth:`cache_key`.
    """

    backend_name = "redis"

    def __init__(
        self,
        *,
        namespace: str = "jsonview:fragments:v1",
        default_ttl: int = 300,
    ) -> None:
        """Initialize the cache adapter.

        Args:
            namespace: Prefix applied to all stored keys.
            default_ttl: Seconds used when no ``expires_in`` is given; ``0``
                stores without expiry.
        """
        self._ns = namespace.strip(":")
        self._default_ttl = default_ttl

    def _k(self, key: str) -> str:
        return f"{self._ns}:{key.lstrip(':')}"

    def cache_key(self, value: Any, options: Mapping[str, Any]) -> str:
        return build_cache_key(value, options)

    async def fetch(
        self,
        key: str,
        options: Mapping[str, Any],
        on_miss: Callable[[], Fragment],
    ) -> Fragment:
        """Return the cached fragment or render, store and return it."""
        start = time.perf_counter()
        hit = False
        try:
            redis = get_redis_client()
            if not options.get("force"):
                raw = await redis.get(self._k(key))
                if raw is not None:
                    hit = True
                    return json.loads(raw)

            value = on_miss()
            await redis.set(
                self._k(key),
                _dumps(key, value),
                ex=resolve_ttl_seconds(options, self._default_ttl),
            )
            return value
        finally:
            observe_fragment_cache_operation(
                operation="fetch",
                backend=self.backend_name,
                hits=int(hit),
                misses=int(not hit),
                duration_s=time.perf_counter() - start,
            )

    async def fetch_multi(
        self,
        keys: Sequence[str],
        options: Mapping[str, Any],
        on_miss: Callable[[str], Fragment],
    ) -> Mapping[str, Fragment]:
        """Fetch ``keys`` in one round-trip and render the misses.

        Returns:
            Mapping of key to fragment, in the order of ``keys``.
        """
        if not keys:
            return {}

        start = time.perf_counter()
        found: dict[str, Fragment] = {}
        missing: list[str] = []
        try:
            redis = get_redis_client()
            if options.get("force"):
                raws: list[Any] = [None] * len(keys)
            else:
                raws = await redis.mget([self._k(k) for k in keys])

            for key, raw in zip(keys, raws, strict=True):
                if raw is None:
                    missing.append(key)
                else:
                    found[key] = json.loads(raw)

            computed = {key: on_miss(key) for key in missing}
            payloads = {key: _dumps(key, value) for key, value in computed.items()}

            ttl = resolve_ttl_seconds(options, self._default_ttl)
            for key, payload in payloads.items():
                await redis.set(self._k(key), payload, ex=ttl)

            _LOGGER.debug(
                "fragment_cache.fetch_multi",
                extra={"extra": {"keys": len(keys), "hits": len(found), "misses": len(missing)}},
            )
            return {key: found[key] if key in found else computed[key] for key in keys}
        finally:
            observe_fragment_cache_operation(
                operation="fetch_multi",
                backend=self.backend_name,
                hits=len(found),
                misses=len(missing),
                duration_s=time.perf_counter() - start,
            )
