# Copyright (c)
# SPDX-License-Identifier: MIT
"""Prometheus metrics for fragment caches (registry-aware, hot-reload safe).

Accessors return a *singleton* collector bound to the **current**
``prometheus_client.REGISTRY``. When tests swap the default registry the
module cache resets automatically, so there are no duplicate-registration
errors.

Example:
    get_fragment_cache_operations_total().labels(
        operation="fetch_multi", backend="redis", result="hit"
    ).inc(3)
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final

import prometheus_client as prom
from prometheus_client import Counter, Histogram

__all__ = [
    "get_fragment_cache_operation_duration_seconds",
    "get_fragment_cache_operations_total",
    "observe_fragment_cache_operation",
]

_log = logging.getLogger(__name__)

# Seconds; fragment lookups are expected to be sub-10ms on a warm Redis.
_BUCKETS: Final[tuple[float, ...]] = (
    0.001,
    0.0025,
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
)

_registry_id: int | None = None
_collectors: dict[str, Counter | Histogram] = {}
_lock = threading.RLock()


def _ensure_registry() -> None:
    """Drop cached collectors if the active registry changed."""
    global _registry_id
    with _lock:
        rid = id(prom.REGISTRY)
        if _registry_id != rid:
            _collectors.clear()
            _registry_id = rid


def _lookup_existing[C: (Counter, Histogram)](name: str, kind: type[C]) -> C | None:
    """Return a collector already registered under ``name``, if of ``kind``."""
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, kind):
                return col
    return None


def _get_or_create[C: (Counter, Histogram)](
    kind: type[C],
    name: str,
    help_text: str,
    labelnames: tuple[str, ...],
    **kwargs: object,
) -> C:
    """Get or register a collector on the active registry.

    Args:
        kind: ``Counter`` or ``Histogram``.
        name: Metric name (snake_case).
        help_text: Human-readable description.
        labelnames: Label names.
        **kwargs: Extra constructor arguments (e.g. ``buckets``).

    Returns:
        The collector bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _collectors.get(name)
        if isinstance(cached, kind):
            return cached

        existing = _lookup_existing(name, kind)
        if existing is not None:
            _collectors[name] = existing
            return existing

        try:
            col = kind(name, help_text, labelnames, registry=prom.REGISTRY, **kwargs)
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, kind)
                if again is not None:
                    _collectors[name] = again
                    return again
            _log.exception("Failed to register Prometheus collector %s", name)
            raise
        _collectors[name] = col
        return col


def get_fragment_cache_operations_total() -> Counter:
    """Return the fragment cache operation counter.

    Labels:
        operation: ``fetch`` or ``fetch_multi``.
        backend: ``redis`` or ``memory``.
        result: ``hit`` or ``miss``.

    Returns:
        Counter: Labelled collector.
    """
    return _get_or_create(
        Counter,
        "jsonview_fragment_cache_operations_total",
        "Fragment cache lookups by result",
        ("operation", "backend", "result"),
    )


def get_fragment_cache_operation_duration_seconds() -> Histogram:
    """Return the fragment cache latency histogram.

    Labels:
        operation: ``fetch`` or ``fetch_multi``.
        backend: ``redis`` or ``memory``.

    Returns:
        Histogram: Labelled collector.
    """
    return _get_or_create(
        Histogram,
        "jsonview_fragment_cache_operation_duration_seconds",
        "Latency (seconds) of fragment cache operations, including miss rendering",
        ("operation", "backend"),
        buckets=_BUCKETS,
    )


def observe_fragment_cache_operation(
    *,
    operation: str,
    backend: str,
    hits: int,
    misses: int,
    duration_s: float,
) -> None:
    """Record one cache operation. Never raises."""
    with suppress(Exception):
        counter = get_fragment_cache_operations_total()
        if hits:
            counter.labels(operation=operation, backend=backend, result="hit").inc(hits)
        if misses:
            counter.labels(operation=operation, backend=backend, result="miss").inc(misses)
        get_fragment_cache_operation_duration_seconds().labels(
            operation=operation, backend=backend
        ).observe(duration_s)
