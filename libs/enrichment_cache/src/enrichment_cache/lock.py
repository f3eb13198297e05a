"""
Per-key mutual exclusion for in-flight enrichments.

A lock is a short-lived store entry written with the store's atomic
set-if-absent primitive. Release deletes the entry only while it still holds
the releasing caller's token, so a lock that expired and was re-acquired elsewhere is
never removed by its previous owner. A holder that hangs loses the lock when
the TTL runs out.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from .exceptions import CacheStorageError
from .store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL_SECONDS = 120.0


class ConcurrencyGuard:
    """Best-effort lock keyed by ``(anime, character)`` lock keys."""

    def __init__(
        self, store: KeyValueStore, default_ttl_seconds: float = DEFAULT_LOCK_TTL_SECONDS
    ) -> None:
        self._store = store
        self.default_ttl_seconds = default_ttl_seconds
        # acquisition token -> stored value, one entry per live acquisition
        self._held: dict[str, str] = {}

    async def try_acquire(self, key: str, ttl_seconds: float | None = None) -> str | None:
        """Try to take the lock for ``key``.

        Returns:
            The acquisition token to pass to :meth:`release`, or None if a live
            lock exists or the store could not be reached.
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        token = uuid.uuid4().hex
        value = json.dumps(
            {
                "token": token,
                "created_at": datetime.now(UTC).isoformat(),
            }
        )
        try:
            acquired = await self._store.set_if_absent(key, value, ttl)
        except CacheStorageError as e:
            logger.warning(f"Lock acquisition failed for {key}: {e}")
            return None

        if not acquired:
            logger.info(f"Lock {key} already held; enrichment in progress elsewhere")
            return None
        self._held[token] = value
        logger.debug(f"Acquired lock {key} (ttl={ttl}s)")
        return token

    async def release(self, key: str, token: str | None) -> None:
        """Release ``key`` if ``token`` still owns it. Never raises."""
        value = self._held.pop(token, None) if token else None
        if value is None:
            return
        try:
            released = await self._store.delete_if_equals(key, value)
        except CacheStorageError as e:
            logger.warning(f"Lock release failed for {key}; it will expire by TTL: {e}")
            return
        if not released:
            logger.warning(f"Lock {key} expired before release")

    async def is_locked(self, key: str) -> bool:
        try:
            return await self._store.get(key) is not None
        except CacheStorageError as e:
            logger.warning(f"Lock lookup failed for {key}: {e}")
            return False

    @asynccontextmanager
    async def hold(
        self, key: str, ttl_seconds: float | None = None
    ) -> AsyncIterator[bool]:
        """Acquire ``key`` for the duration of the block.

        Yields whether the lock was acquired; it is released on every exit
        path when it was.
        """
        token = await self.try_acquire(key, ttl_seconds)
        try:
            yield token is not None
        finally:
            if token is not None:
                await self.release(key, token)
