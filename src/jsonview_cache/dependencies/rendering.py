# Copyright (c)
# SPDX-License-Identifier: MIT
"""Dependency wiring for cached view rendering.

Overview:
    FastAPI dependency providers that build the fragment cache, the collection
    renderer and a per-request :class:`JsonView`, plus an app lifespan that
    configures logging and owns the shared Redis client.

Layer:
    dependencies

Design:
    * Select cache implementation by environment:
        - In-memory cache in tests (hermetic, no Redis dependency).
        - RedisFragmentCache everywhere else.
    * The caching switch comes from ``Settings.perform_caching`` and is handed
      to the view explicitly; nothing downstream reads settings.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI

from jsonview_cache.adapters.presenters.json_view import JsonView
from jsonview_cache.application.interfaces.cache_port import FragmentCachePort
from jsonview_cache.application.services.collection_renderer import BatchedCollectionRenderer
from jsonview_cache.config.settings import Environment, Settings, get_settings
from jsonview_cache.infrastructure.caching.fragment_cache import RedisFragmentCache
from jsonview_cache.infrastructure.caching.memory_cache import InMemoryFragmentCache
from jsonview_cache.infrastructure.caching.redis_client import close_redis, init_redis
from jsonview_cache.infrastructure.logging.logger import configure_root_logging, get_json_logger

__all__ = [
    "get_collection_renderer",
    "get_fragment_cache",
    "get_json_view",
    "rendering_lifespan",
]

logger = get_json_logger(__name__)


def _is_test_mode(settings: Settings) -> bool:
    return settings.environment is Environment.TEST or os.getenv("JSONVIEW_TEST_MODE") == "1"


@lru_cache(maxsize=1)
def _build_cache() -> FragmentCachePort:
    settings = get_settings()
    if _is_test_mode(settings):
        return InMemoryFragmentCache(default_ttl=settings.fragment_cache_default_ttl_s)

    logger.info(
        "fragment_cache.redis",
        extra={"extra": {"namespace": settings.fragment_cache_namespace}},
    )
    return RedisFragmentCache(
        namespace=settings.fragment_cache_namespace,
        default_ttl=settings.fragment_cache_default_ttl_s,
    )


def get_fragment_cache() -> FragmentCachePort:
    """Return the process-wide fragment cache."""
    return _build_cache()


def get_collection_renderer(
    cache: Annotated[FragmentCachePort, Depends(get_fragment_cache)],
) -> BatchedCollectionRenderer:
    """Return a collection renderer bound to the fragment cache."""
    return BatchedCollectionRenderer(cache)


def get_json_view(
    renderer: Annotated[BatchedCollectionRenderer, Depends(get_collection_renderer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JsonView:
    """Return a fresh view for the current request."""
    return JsonView(renderer, perform_caching=settings.perform_caching)


@asynccontextmanager
async def rendering_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and manage the Redis client for the app's lifetime.

    Test mode skips Redis entirely; the global client is closed on shutdown
    whenever one was opened.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to FastAPI to serve requests.
    """
    settings = get_settings()
    configure_root_logging(settings.log_level)
    if not _is_test_mode(settings):
        init_redis(settings)
    app.state.settings = settings
    try:
        yield
    finally:
        await close_redis()
