# Copyright (c)
# SPDX-License-Identifier: MIT
"""Domain exceptions package."""

from __future__ import annotations

from .base import DomainError
from .rendering import CacheKeyError, FragmentMergeError, FragmentSerializationError

__all__ = [
    "DomainError",
    "CacheKeyError",
    "FragmentMergeError",
    "FragmentSerializationError",
]
