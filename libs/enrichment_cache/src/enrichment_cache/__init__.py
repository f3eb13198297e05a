"""TTL cache and lock infrastructure for the character enrichment pipeline."""

from .cache import CacheStatistics, EnrichmentCache
from .config import CacheConfig, get_cache_config
from .keys import character_cache_key, lock_key
from .lock import ConcurrencyGuard
from .store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore

__all__ = [
    "CacheConfig",
    "CacheStatistics",
    "ConcurrencyGuard",
    "EnrichmentCache",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "character_cache_key",
    "get_cache_config",
    "lock_key",
]
