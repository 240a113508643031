# Copyright (c)
# SPDX-License-Identifier: MIT
"""Application Interface: Fragment Cache Ports.

Synopsis:
    Minimal fetch-or-compute behavior the collection renderer needs from a
    cache backend. Enables swapping Redis, in-memory, or other stores.

Capabilities:
    * ``FragmentCachePort``: key derivation plus single-key fetch-or-compute.
      Every backend must provide it.
    * ``BatchFragmentCachePort``: adds a multi-key ``fetch_multi``. Optional;
      detected at call time with ``isinstance``.

Layer:
    application/interfaces
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

#: A rendered, JSON-serializable fragment (usually a mapping).
type Fragment = Any


@runtime_checkable
class FragmentCachePort(Protocol):
    """Fetch-or-compute cache for rendered fragments.

    Implementations own key normalization, storage, expiration and eviction.
    On a miss they must call ``on_miss`` exactly once, store its result under
    ``key`` and return it. Exceptions raised by ``on_miss`` must propagate.
    """

    def cache_key(self, value: Any, options: Mapping[str, Any]) -> str:
        """Derive the backend key for a cache-key input.

        Args:
            value: An item, or an ``(explicit_key, item)`` pair.
            options: Pass-through options (e.g. ``namespace``, ``version``).

        Returns:
            Normalized cache key.
        """

    async def fetch(
        self,
        key: str,
        options: Mapping[str, Any],
        on_miss: Callable[[], Fragment],
    ) -> Fragment:
        """Return the cached fragment for ``key`` or compute and store it.

        Args:
            key: Cache key produced by :meth:`cache_key`.
            options: Pass-through options (e.g. ``expires_in``).
            on_miss: Zero-argument callable producing the fragment.

        Returns:
            The cached or freshly computed fragment.
        """


@runtime_checkable
class BatchFragmentCachePort(FragmentCachePort, Protocol):
    """Fragment cache that can serve many keys in one round-trip."""

    async def fetch_multi(
        self,
        keys: Sequence[str],
        options: Mapping[str, Any],
        on_miss: Callable[[str], Fragment],
    ) -> Mapping[str, Fragment] | Sequence[Fragment]:
        """Fetch many keys at once, computing and storing the misses.

        Args:
            keys: Cache keys produced by :meth:`cache_key`.
            options: Pass-through options (e.g. ``expires_in``).
            on_miss: Callable receiving a missing key and producing its fragment.

        Returns:
            Either a mapping of key to fragment or a sequence of fragments.
            Ordering is chosen by the implementation.
        """
