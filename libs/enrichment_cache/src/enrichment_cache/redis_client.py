"""Process-wide async Redis client shared by the cache, locks and documents."""

from __future__ import annotations

import asyncio
import logging

from redis.asyncio import Redis

from .config import get_cache_config
from .exceptions import RedisInitializationError

logger = logging.getLogger(__name__)

_redis_lock = asyncio.Lock()
_redis_client: Redis | None = None


async def get_redis_client(redis_url: str | None = None) -> Redis:
    """
    Return the singleton async Redis client.

    The client is initialized once and the same instance is returned on
    subsequent calls. Initialization is guarded by an async lock so concurrent
    callers cannot race with client closure.

    Args:
        redis_url: Optional URL overriding ``CacheConfig.redis_url`` on first use.

    Returns:
        Redis: The initialized singleton Redis client.

    Raises:
        RedisInitializationError: If no Redis instance could be created.
    """
    global _redis_client
    async with _redis_lock:
        if _redis_client is None:
            config = get_cache_config()
            url = redis_url or config.redis_url or "redis://localhost:6379/0"
            logger.info(
                f"Initializing singleton Redis client: {url} "
                f"(max_connections={config.redis_max_connections})"
            )
            _redis_client = Redis.from_url(
                url,
                decode_responses=True,
                max_connections=config.redis_max_connections,
                socket_keepalive=config.redis_socket_keepalive,
                socket_connect_timeout=config.redis_socket_connect_timeout,
                socket_timeout=config.redis_socket_timeout,
                retry_on_timeout=config.redis_retry_on_timeout,
                health_check_interval=config.redis_health_check_interval,
            )
        if _redis_client is None:
            raise RedisInitializationError()
        return _redis_client


async def close_redis_client() -> None:
    """
    Close the singleton Redis client.

    Safe to call when no client is initialized (no-op).
    """
    global _redis_client
    async with _redis_lock:
        if _redis_client:
            logger.info("Closing singleton Redis client.")
            await _redis_client.aclose()
            _redis_client = None
