"""
Cache configuration for enrichment results and in-flight locks.

Supports a Redis backend for production and multi-worker processing, and an
in-memory backend for local development and tests.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseSettings):
    """Enrichment cache configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cache_enabled: bool = Field(
        default=True,
        description="Enable result caching of successful enrichments",
    )

    storage_type: Literal["redis", "memory"] = Field(
        default="redis", description="Cache storage backend type"
    )

    # Redis configuration
    redis_url: str | None = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Cache key configuration
    cache_key_prefix: str = Field(
        default="character_enrichment",
        description="Namespace for enrichment cache and lock keys",
    )
    max_cache_key_length: int = Field(
        default=200,
        description=(
            "Maximum cache key length before hashing. "
            "Keys exceeding this threshold are SHA256-hashed to 64 hex chars."
        ),
    )

    # Redis connection pool configuration
    redis_max_connections: int = Field(
        default=50,
        description="Max Redis connections shared by cache, locks and documents",
    )
    redis_socket_keepalive: bool = Field(
        default=True,
        description="Enable TCP keepalive to detect stale connections",
    )
    redis_socket_connect_timeout: int = Field(
        default=5,
        description="Connection timeout in seconds (fail-fast on unreachable Redis)",
    )
    redis_socket_timeout: int = Field(
        default=10,
        description="Socket read/write timeout in seconds",
    )
    redis_retry_on_timeout: bool = Field(
        default=True,
        description="Retry operations on timeout",
    )
    redis_health_check_interval: int = Field(
        default=30,
        description="Health check interval in seconds (0=disabled)",
    )


@lru_cache
def get_cache_config() -> CacheConfig:
    """Get cached CacheConfig instance populated from environment variables.

    Environment variables are automatically read by Pydantic BaseSettings:
        CACHE_ENABLED (default: true)
        STORAGE_TYPE (default: "redis")
        REDIS_URL (default: "redis://localhost:6379/0")
        CACHE_KEY_PREFIX (default: "character_enrichment")
        MAX_CACHE_KEY_LENGTH (default: 200)
        REDIS_MAX_CONNECTIONS (default: 50)

    Returns:
        Cached CacheConfig instance.

    Note:
        Uses @lru_cache for singleton pattern. For testing, call
        get_cache_config.cache_clear() to reset the cache.
    """
    return CacheConfig()
