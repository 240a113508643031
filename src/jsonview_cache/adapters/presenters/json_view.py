# Copyright (c)
# SPDX-License-Identifier: MIT
"""JSON view builder with cached collection rendering.

Purpose:
    A minimal JSON builder used by adapter layers to shape response bodies.
    Collection caching is composed in through a
    :class:`BatchedCollectionRenderer` rather than patched onto the builder.

Responsibilities:
    * Build a JSON document incrementally (``set``, ``extract``, ``merge``).
    * Render collections directly (``array``) or through the fragment cache
      (``cache_collection`` / ``cache_collection_if``).
    * Serialize the document (``target``).

Merge semantics:
    * An empty document takes the update as-is.
    * list + list concatenates.
    * dict + dict deep-merges (update wins on scalar conflicts).
    * Anything else raises :class:`FragmentMergeError`.

Layer:
    adapters/presenters
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from jsonview_cache.application.interfaces.cache_port import Fragment
from jsonview_cache.application.services.collection_renderer import (
    BatchedCollectionRenderer,
    CollectionCacheOptions,
)
from jsonview_cache.domain.exceptions.rendering import FragmentMergeError

__all__ = ["JsonView"]

type ViewRenderFn = Callable[["JsonView", Any], None]


def _deep_merge(current: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(current)
    for key, value in updates.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def _merge_values(current: Fragment, updates: Fragment) -> Fragment:
    if current is None or (isinstance(current, dict | list) and not current):
        return updates
    if isinstance(current, list) and isinstance(updates, list):
        return current + updates
    if isinstance(current, Mapping) and isinstance(updates, Mapping):
        return _deep_merge(current, updates)
    raise FragmentMergeError(
        f"Can't merge {type(updates).__name__} into {type(current).__name__}",
        details={"current": type(current).__name__, "updates": type(updates).__name__},
    )


class JsonView:
    """Incremental JSON document builder.

    Args:
        renderer: Collection renderer used by ``cache_collection``. Without one
            every collection renders directly.
        perform_caching: Host-level switch for cached rendering, typically
            ``Settings.perform_caching``.
    """

    def __init__(
        self,
        renderer: BatchedCollectionRenderer | None = None,
        *,
        perform_caching: bool = False,
    ) -> None:
        self._renderer = renderer
        self._perform_caching = perform_caching
        self._attributes: Fragment = {}

    @property
    def attributes(self) -> Fragment:
        return self._attributes

    @property
    def perform_caching(self) -> bool:
        return self._perform_caching and self._renderer is not None

    # ------------------------- Building -------------------------------- #

    def set(self, key: str, value: Any) -> None:
        """Set ``key`` on the current object."""
        if not isinstance(self._attributes, dict):
            raise FragmentMergeError(
                f"Can't set {key!r} on a {type(self._attributes).__name__} document",
                details={"key": key},
            )
        self._attributes[key] = value

    def extract(self, obj: Any, *attrs: str) -> None:
        """Copy ``attrs`` from ``obj`` (mapping keys or attributes)."""
        for attr in attrs:
            value = obj[attr] if isinstance(obj, Mapping) else getattr(obj, attr)
            self.set(attr, value)

    def merge(self, value: Fragment) -> None:
        """Merge a fragment (or list of fragments) into the document."""
        self._attributes = _merge_values(self._attributes, value)

    def scope(self, render_fn: ViewRenderFn, item: Any) -> Fragment:
        """Render ``item`` into a fresh child view and return its document."""
        child = JsonView(self._renderer, perform_caching=self._perform_caching)
        render_fn(child, item)
        return child.attributes

    # ------------------------- Collections ----------------------------- #

    def array(self, collection: Iterable[Any], render_fn: ViewRenderFn) -> None:
        """Render every item directly and merge the results as a list."""
        self.merge([self.scope(render_fn, item) for item in collection])

    async def cache_collection(
        self,
        collection: Iterable[Any],
        render_fn: ViewRenderFn,
        *,
        key: Any | Callable[[Any], Any] | None = None,
        **options: Any,
    ) -> None:
        """Render ``collection`` through the fragment cache when caching is on.

        Example:
            await view.cache_collection(
                people, lambda v, p: v.extract(p, "id", "name"), expires_in=600
            )

        Args:
            collection: Items to render.
            render_fn: Builds one item into the child view it receives.
            key: Static key or callable applied to each item.
            **options: Forwarded to the cache backend (``expires_in``,
                ``namespace``, ``version``, ``force``).
        """
        if self._renderer is None:
            self.array(collection, render_fn)
            return

        opts = CollectionCacheOptions(
            cache_enabled=self._perform_caching,
            key=key,
            backend_options=options,
        )
        fragments = await self._renderer.render_collection(
            collection, opts, lambda item: self.scope(render_fn, item)
        )
        self.merge(fragments)

    async def cache_collection_if(
        self,
        condition: bool,
        collection: Iterable[Any],
        render_fn: ViewRenderFn,
        *,
        key: Any | Callable[[Any], Any] | None = None,
        **options: Any,
    ) -> None:
        """Cache the collection only when ``condition`` holds."""
        if condition:
            await self.cache_collection(collection, render_fn, key=key, **options)
        else:
            self.array(collection, render_fn)

    # ------------------------- Output ---------------------------------- #

    def target(self) -> str:
        """Return the document as compact JSON."""
        return json.dumps(self._attributes, separators=(",", ":"), ensure_ascii=False)
