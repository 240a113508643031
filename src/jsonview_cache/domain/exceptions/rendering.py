# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Rendering Domain Exceptions

Purpose:
    Error conditions raised while deriving cache keys, merging fragments into
    a view, or serializing fragments for a cache backend.

Layer: domain/exceptions
"""
from __future__ import annotations

from .base import DomainError


class CacheKeyError(DomainError):
    """A value cannot be expanded into a stable cache key."""

    code = "CACHE_KEY_ERROR"


class FragmentMergeError(DomainError):
    """Two fragments of incompatible shape were merged."""

    code = "FRAGMENT_MERGE_ERROR"


class FragmentSerializationError(DomainError):
    """A rendered fragment is not JSON-serializable."""

    code = "FRAGMENT_SERIALIZATION_ERROR"
