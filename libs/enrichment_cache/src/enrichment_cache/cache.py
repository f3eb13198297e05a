"""
Result-level cache of successful character enrichments.

Entries hold the JSON dump of the character as persisted after its last
successful enrichment. Reads and writes are best effort: storage failures and
corrupt entries degrade to cache misses and are logged, never raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .exceptions import CacheStorageError, InvalidTTLError
from .keys import LOCK_SUFFIX
from .store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 30 * 24 * 60 * 60


@dataclass(slots=True)
class CacheStatistics:
    """Snapshot of cache occupancy (locks excluded)."""

    total_entries: int
    valid_entries: int
    expired_entries: int
    last_updated: datetime


class EnrichmentCache:
    """TTL key/value cache for enrichment payloads."""

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        key_prefix: str = "character_enrichment",
        enabled: bool = True,
    ) -> None:
        if default_ttl_seconds < 0:
            raise InvalidTTLError(default_ttl_seconds, "default_ttl_seconds")
        self._store = store
        self.default_ttl_seconds = default_ttl_seconds
        self.key_prefix = key_prefix
        self.enabled = enabled

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached payload for ``key``, or None on miss, expiry or error."""
        if not self.enabled:
            return None

        try:
            raw = await self._store.get(key)
        except CacheStorageError as e:
            logger.warning(f"Cache read error for {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Cache decode error for key {key}: {e}")
            return None

        if not isinstance(value, dict):
            logger.warning(f"Ignoring non-object cache entry for key {key}")
            return None
        return value

    async def set(
        self, key: str, value: dict[str, Any], ttl_seconds: float | None = None
    ) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds`` (default: 30 days)."""
        if not self.enabled:
            return

        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            raise InvalidTTLError(ttl)

        try:
            serialized = json.dumps(value, ensure_ascii=False)
            await self._store.set(key, serialized, ttl)
        except (CacheStorageError, TypeError) as e:
            # TypeError: payload is not JSON-serializable
            logger.warning(f"Cache write error for {key}: {e}")

    async def invalidate(self, key: str) -> bool:
        """Remove ``key``; returns True if an entry existed."""
        try:
            removed = await self._store.delete(key)
        except CacheStorageError as e:
            logger.warning(f"Cache invalidation error for {key}: {e}")
            return False
        if removed:
            logger.info(f"Invalidated cache entry {key}")
        return removed

    async def sweep_expired(self) -> int:
        """Reclaim space held by expired entries. Not required for correctness."""
        removed = await self._store.sweep_expired(self.key_prefix)
        logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    async def statistics(self) -> CacheStatistics:
        """Count stored, live and expired cache entries under the key prefix."""
        total, expired = await self._store.count_entries(
            self.key_prefix, exclude_suffix=LOCK_SUFFIX
        )
        return CacheStatistics(
            total_entries=total,
            valid_entries=max(0, total - expired),
            expired_entries=expired,
            last_updated=datetime.now(UTC),
        )
