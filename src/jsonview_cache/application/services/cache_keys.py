# Copyright (c)
# SPDX-License-Identifier: MIT
"""Cache key expansion for rendered fragments.

Synopsis:
    Turns items, explicit keys and key-shaping options into normalized string
    keys. Backends delegate their ``cache_key`` to :func:`build_cache_key` so
    every store derives identical keys for identical inputs.

Key policy:
    * ``cache_key`` attribute or zero-arg method wins (e.g. ``"people/1-20250101"``).
    * Lists and tuples expand element-wise and join with ``/``; plain string
      elements have ``%`` and ``/`` percent-escaped so ``("a", "b")`` and
      ``"a/b"`` never expand to the same key.
    * Mappings expand to sorted ``k=v`` pairs joined with ``&``.
    * Scalars (str, numbers, UUID, dates, enums) use their text form.
    * Objects exposing ``id`` become ``<type_name>/<id>``.
    * Anything else is rejected with :class:`CacheKeyError`.

Layer:
    application/services
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Final
from uuid import UUID

from jsonview_cache.domain.exceptions.rendering import CacheKeyError

__all__ = ["build_cache_key", "expand_cache_key"]

_DEFAULT_PREFIX: Final[str] = "jsonview"
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _type_segment(value: Any) -> str:
    return _CAMEL_BOUNDARY.sub("_", type(value).__name__.lstrip("_")).lower()


def _sequence_part(value: Any) -> str:
    expanded = expand_cache_key(value)
    if isinstance(value, str) and not isinstance(value, Enum):
        return expanded.replace("%", "%25").replace("/", "%2F")
    return expanded


def expand_cache_key(value: Any) -> str:
    """Expand ``value`` into a cache key string.

    Args:
        value: Item, explicit key, or a composite of those.

    Returns:
        Non-empty key string.

    Raises:
        CacheKeyError: If the value (or a component of it) has no stable key.
    """
    if value is None:
        raise CacheKeyError("None cannot be used as a cache key")

    if isinstance(value, Enum):
        return expand_cache_key(value.value)
    if isinstance(value, str):
        if not value:
            raise CacheKeyError("Empty string cannot be used as a cache key")
        return value
    if isinstance(value, bool | int | float | Decimal | UUID):
        return str(value)
    if isinstance(value, datetime | date):
        return value.isoformat()

    attr = getattr(value, "cache_key", None)
    if attr is not None:
        return expand_cache_key(attr() if callable(attr) else attr)

    if isinstance(value, list | tuple):
        parts = [_sequence_part(v) for v in value]
        if not parts:
            raise CacheKeyError("Empty sequence cannot be used as a cache key")
        return "/".join(parts)

    if isinstance(value, Mapping):
        if not value:
            raise CacheKeyError("Empty mapping cannot be used as a cache key")
        pairs = sorted((str(k), expand_cache_key(v)) for k, v in value.items())
        return "&".join(f"{k}={v}" for k, v in pairs)

    ident = getattr(value, "id", None)
    if ident is not None:
        return f"{_type_segment(value)}/{expand_cache_key(ident)}"

    raise CacheKeyError(
        f"Cannot derive a cache key from {type(value).__name__!r}",
        details={"type": type(value).__name__},
    )


def build_cache_key(
    value: Any,
    options: Mapping[str, Any] | None = None,
    *,
    prefix: str = _DEFAULT_PREFIX,
) -> str:
    """Build the full fragment key for ``value``.

    Layout: ``[namespace/]prefix[/version]/expanded``.

    Args:
        value: Cache-key input (an item, or an ``(explicit_key, item)`` pair).
        options: Caller options; only ``namespace`` and ``version`` are read.
        prefix: Fixed segment identifying fragment keys.

    Returns:
        Fully expanded key.
    """
    opts = options or {}
    segments: list[str] = []

    namespace = opts.get("namespace")
    if namespace:
        segments.append(str(namespace).strip("/"))
    segments.append(prefix)
    version = opts.get("version")
    if version is not None:
        segments.append(expand_cache_key(version))
    segments.append(expand_cache_key(value))

    return "/".join(segments)
