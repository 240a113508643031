# Copyright (c)
# SPDX-License-Identifier: MIT
"""jsonview_cache: batched, cache-aware collection rendering for JSON views.

Typical usage:
    renderer = BatchedCollectionRenderer(cache=RedisFragmentCache())
    view = JsonView(renderer, perform_caching=settings.perform_caching)
    await view.cache_collection(people, render_person, expires_in=600)
"""

from __future__ import annotations

from jsonview_cache.adapters.presenters.json_view import JsonView
from jsonview_cache.application.services.collection_renderer import (
    BatchedCollectionRenderer,
    CollectionCacheOptions,
)

__all__ = ["BatchedCollectionRenderer", "CollectionCacheOptions", "JsonView"]
