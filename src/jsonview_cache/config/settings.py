# Copyright (c)
# SPDX-License-Identifier: MIT
"""jsonview_cache Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated configuration for cached view rendering. Only the
    dependency wiring and infrastructure read it; the renderer itself receives
    the caching flag and backend as explicit arguments.

Design:
    - Pydantic v2 BaseSettings with `extra='forbid'` to catch unknown env.
    - Explicit field declarations with constrained types and ranges.
    - Environment enumeration for behavior toggles (includes TEST).
    - Singleton accessor `get_settings()` with LRU cache.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from functools import lru_cache

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    CI = "ci"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Typed configuration for fragment caching and view rendering."""

    # ---------------------------
    # Core environment
    # ---------------------------
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level applied by configure_root_logging().",
        validation_alias="LOG_LEVEL",
    )

    # ---------------------------
    # View rendering
    # ---------------------------
    perform_caching: bool = Field(
        default=False,
        description="Enable cached collection rendering. When false, views render directly.",
        validation_alias="PERFORM_CACHING",
    )

    # ---------------------------
    # Redis
    # ---------------------------
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL backing the fragment cache.",
        validation_alias="REDIS_URL",
    )
    redis_health_check_interval_s: int = Field(
        default=15,
        ge=1,
        le=3600,
        description="Health check interval for Redis clients in seconds.",
        validation_alias="REDIS_HEALTH_CHECK_INTERVAL_S",
    )
    redis_socket_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket timeout in seconds for Redis commands.",
        validation_alias="REDIS_SOCKET_TIMEOUT_S",
    )
    redis_socket_connect_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket connect timeout in seconds for Redis.",
        validation_alias="REDIS_SOCKET_CONNECT_TIMEOUT_S",
    )

    # ---------------------------
    # Fragment cache
    # ---------------------------
    fragment_cache_namespace: str = Field(
        default="jsonview:fragments:v1",
        min_length=1,
        description="Prefix applied to every fragment key stored in Redis.",
        validation_alias="FRAGMENT_CACHE_NAMESPACE",
    )
    fragment_cache_default_ttl_s: int = Field(
        default=300,
        ge=0,
        le=30 * 24 * 60 * 60,
        description="TTL for fragments when no expires_in is given. 0 stores without expiry.",
        validation_alias="FRAGMENT_CACHE_DEFAULT_TTL_S",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _normalize(self) -> Settings:
        """Normalize derived fields.

        Returns:
            Settings: The validated and possibly mutated settings instance.
        """
        self.log_level = self.log_level.strip().upper() or "INFO"
        self.fragment_cache_namespace = self.fragment_cache_namespace.strip(":")
        if not self.fragment_cache_namespace:
            raise ValueError("FRAGMENT_CACHE_NAMESPACE must contain more than ':'")

        if self.environment is Environment.TEST and os.getenv("JSONVIEW_TEST_MODE") != "1":
            os.environ["JSONVIEW_TEST_MODE"] = "1"
            logger.info("JSONVIEW_TEST_MODE enabled due to ENVIRONMENT=test")

        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance.

    Returns:
        Settings: Validated settings.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        logger.exception("Invalid jsonview_cache configuration")
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    logger.info(
        "Settings initialized",
        extra={
            "extra": {
                "environment": settings.environment.value,
                "perform_caching": settings.perform_caching,
                "redis_url_set": bool(settings.redis_url),
                "fragment_cache_namespace": settings.fragment_cache_namespace,
                "fragment_cache_default_ttl_s": settings.fragment_cache_default_ttl_s,
            }
        },
    )
    return settings
