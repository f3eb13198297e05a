"""
Key/value storage with TTL semantics backing the enrichment cache and locks.

Two implementations share the :class:`KeyValueStore` contract:

- :class:`RedisKeyValueStore` for production; expiry and the atomic
  set-if-absent primitive come from Redis itself (``SET NX PX``).
- :class:`InMemoryKeyValueStore` for development and tests; expired entries
  are invisible to reads and reclaimed by :meth:`sweep_expired`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import CacheStorageError, InvalidTTLError

logger = logging.getLogger(__name__)

# Deletes KEYS[1] only while it still holds ARGV[1]
_DELETE_IF_EQUALS_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def _validate_ttl(ttl_seconds: float | None) -> None:
    if ttl_seconds is not None and ttl_seconds < 0:
        raise InvalidTTLError(ttl_seconds, "ttl_seconds")


class KeyValueStore(ABC):
    """Abstract string key/value store with per-key TTL."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the live value for ``key``, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: float) -> bool:
        """Atomically store ``value`` only if no live value exists.

        Returns:
            True when the value was written.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete ``key``; returns True if something was removed."""

    @abstractmethod
    async def delete_if_equals(self, key: str, expected: str) -> bool:
        """Atomically delete ``key`` only while it still holds ``expected``."""

    @abstractmethod
    async def scan(self, prefix: str) -> list[str]:
        """Return the live keys starting with ``prefix``."""

    @abstractmethod
    async def count_entries(
        self, prefix: str, exclude_suffix: str | None = None
    ) -> tuple[int, int]:
        """Return ``(stored, expired)`` counts of keys under ``prefix``.

        Keys ending with ``exclude_suffix`` are not counted.
        """

    @abstractmethod
    async def sweep_expired(self, prefix: str = "") -> int:
        """Physically remove expired entries; returns how many were removed."""


@dataclass(slots=True)
class CacheEntry:
    """In-memory entry; ``expires_at`` is an epoch timestamp or None for no expiry."""

    key: str
    value: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; safe to share between tasks of one event loop."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _live(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def _expiry(self, ttl_seconds: float | None) -> float | None:
        return None if ttl_seconds is None else self._clock() + ttl_seconds

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        _validate_ttl(ttl_seconds)
        async with self._lock:
            self._entries[key] = CacheEntry(key, value, self._expiry(ttl_seconds))

    async def set_if_absent(self, key: str, value: str, ttl_seconds: float) -> bool:
        _validate_ttl(ttl_seconds)
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._entries[key] = CacheEntry(key, value, self._expiry(ttl_seconds))
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def delete_if_equals(self, key: str, expected: str) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None or entry.value != expected:
                return False
            del self._entries[key]
            return True

    async def scan(self, prefix: str) -> list[str]:
        return [key for key in list(self._entries) if key.startswith(prefix) and self._live(key)]

    async def count_entries(
        self, prefix: str, exclude_suffix: str | None = None
    ) -> tuple[int, int]:
        now = self._clock()
        matching = [
            e
            for e in self._entries.values()
            if e.key.startswith(prefix)
            and not (exclude_suffix and e.key.endswith(exclude_suffix))
        ]
        expired = sum(1 for e in matching if e.is_expired(now))
        return len(matching), expired

    async def sweep_expired(self, prefix: str = "") -> int:
        async with self._lock:
            now = self._clock()
            expired = [
                key
                for key, entry in self._entries.items()
                if key.startswith(prefix) and entry.is_expired(now)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired in-memory entries")
        return len(expired)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store. Redis failures surface as :class:`CacheStorageError`."""

    def __init__(self, client: Redis, scan_batch_size: int = 500) -> None:
        self._client = client
        self._scan_batch_size = scan_batch_size

    @staticmethod
    def _ttl_ms(ttl_seconds: float | None) -> int | None:
        if ttl_seconds is None:
            return None
        # PX must be a positive integer
        return max(1, int(ttl_seconds * 1000))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheStorageError(f"Redis GET failed for {key}: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        _validate_ttl(ttl_seconds)
        try:
            await self._client.set(key, value, px=self._ttl_ms(ttl_seconds))
        except RedisError as e:
            raise CacheStorageError(f"Redis SET failed for {key}: {e}") from e

    async def set_if_absent(self, key: str, value: str, ttl_seconds: float) -> bool:
        _validate_ttl(ttl_seconds)
        try:
            result = await self._client.set(
                key, value, nx=True, px=self._ttl_ms(ttl_seconds)
            )
        except RedisError as e:
            raise CacheStorageError(f"Redis SET NX failed for {key}: {e}") from e
        return bool(result)

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._client.delete(key))
        except RedisError as e:
            raise CacheStorageError(f"Redis DEL failed for {key}: {e}") from e

    async def delete_if_equals(self, key: str, expected: str) -> bool:
        try:
            result = await self._client.eval(_DELETE_IF_EQUALS_SCRIPT, 1, key, expected)
        except RedisError as e:
            raise CacheStorageError(f"Redis conditional DEL failed for {key}: {e}") from e
        return bool(result)

    async def scan(self, prefix: str) -> list[str]:
        try:
            return [
                key
                async for key in self._client.scan_iter(
                    match=f"{prefix}*", count=self._scan_batch_size
                )
            ]
        except RedisError as e:
            raise CacheStorageError(f"Redis SCAN failed for {prefix}*: {e}") from e

    async def count_entries(
        self, prefix: str, exclude_suffix: str | None = None
    ) -> tuple[int, int]:
        # Redis evicts expired keys itself, so every scanned key is live
        keys = await self.scan(prefix)
        if exclude_suffix:
            keys = [k for k in keys if not k.endswith(exclude_suffix)]
        return len(keys), 0

    async def sweep_expired(self, prefix: str = "") -> int:
        logger.debug("Redis expires keys natively; nothing to sweep")
        return 0
