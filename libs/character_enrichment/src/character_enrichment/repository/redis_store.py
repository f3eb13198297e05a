"""
Redis-backed anime repository.

Each anime is stored as one JSON string under ``{prefix}:{anime_id}``; a
sorted set ``{prefix}:index`` scored by first-insertion time provides
pagination. Writes use optimistic transactions: the document key is WATCHed,
read, transformed and written inside MULTI/EXEC, and the whole cycle is
retried when another writer touched the document in between.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from common.models.anime import Anime, Character
from common.utils.datetime_utils import utc_now
from common.utils.retry import retry_with_backoff
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from ..exceptions import (
    AnimeNotFoundError,
    ConcurrentModificationError,
    StoreUnavailableError,
)
from ._mutations import (
    apply_bulk_mutation,
    apply_character_mutation,
    apply_patch,
    assign_character_keys,
    stamp,
)
from .base import AnimeRepository, CharacterMutator, CharacterRef, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_write_conflict(error: Exception) -> bool:
    return isinstance(error, WatchError)


class RedisAnimeRepository(AnimeRepository):
    """Anime repository on a Redis client created with ``decode_responses=True``."""

    def __init__(
        self,
        client: Redis,
        key_prefix: str = "anime",
        max_write_retries: int = 5,
        retry_delay: float = 0.05,
    ) -> None:
        self._client = client
        self.key_prefix = key_prefix
        self.max_write_retries = max_write_retries
        self.retry_delay = retry_delay

    def _doc_key(self, anime_id: str) -> str:
        return f"{self.key_prefix}:{anime_id}"

    @property
    def _index_key(self) -> str:
        return f"{self.key_prefix}:index"

    def _decode(self, anime_id: str, raw: str) -> Anime:
        try:
            return Anime.model_validate_json(raw)
        except ValidationError as e:
            raise StoreUnavailableError(f"Corrupt document for anime {anime_id}: {e}") from e

    async def get(self, anime_id: str) -> Anime | None:
        try:
            raw = await self._client.get(self._doc_key(anime_id))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to read anime {anime_id}: {e}") from e
        return self._decode(anime_id, raw) if raw is not None else None

    async def save(self, anime: Anime) -> Anime:
        doc_key = self._doc_key(anime.id)

        def replace(current: Anime | None) -> Anime:
            stored = assign_character_keys(anime.model_copy(deep=True))
            if current is not None:
                stored.version = current.version
            return stamp(stored)

        async def attempt() -> Anime:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(doc_key)
                raw = await pipe.get(doc_key)
                current = self._decode(anime.id, raw) if raw is not None else None
                stored = replace(current)
                pipe.multi()
                pipe.set(doc_key, stored.model_dump_json())
                pipe.zadd(self._index_key, {anime.id: utc_now().timestamp()}, nx=True)
                await pipe.execute()
                return stored

        return await self._run_optimistic(anime.id, attempt)

    async def patch(self, anime_id: str, updates: dict[str, Any]) -> Anime:
        def transform(anime: Anime) -> tuple[Anime, Anime]:
            patched = apply_patch(anime, updates)
            return patched, patched

        return await self._transform(anime_id, transform)

    async def paginated_query(
        self, cursor: str | None = None, page_size: int = 20, descending: bool = True
    ) -> Page:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        start = int(cursor) if cursor else 0
        try:
            # fetch one extra id to learn whether another page exists
            ids = await self._client.zrange(
                self._index_key, start, start + page_size, desc=descending
            )
            window = ids[:page_size]
            raws = await self._client.mget([self._doc_key(i) for i in window]) if window else []
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to list anime: {e}") from e

        items = []
        for anime_id, raw in zip(window, raws, strict=True):
            if raw is None:
                logger.warning(f"Index entry {anime_id} has no document; skipping")
                continue
            items.append(self._decode(anime_id, raw))

        has_more = len(ids) > page_size
        return Page(items=items, next_cursor=str(start + page_size) if has_more else None)

    async def update_character(
        self, anime_id: str, ref: CharacterRef, mutator: CharacterMutator
    ) -> Character:
        def transform(anime: Anime) -> tuple[Anime, Character]:
            return anime, apply_character_mutation(anime, ref, mutator)

        return await self._transform(anime_id, transform)

    async def update_characters(
        self,
        anime_id: str,
        refs: Sequence[CharacterRef] | None,
        mutator: CharacterMutator,
    ) -> list[Character]:
        def transform(anime: Anime) -> tuple[Anime, list[Character]]:
            return anime, apply_bulk_mutation(anime, refs, mutator)

        return await self._transform(anime_id, transform)

    async def _transform(
        self, anime_id: str, transform: Callable[[Anime], tuple[Anime, T]]
    ) -> T:
        """Read-modify-write one document under WATCH."""
        doc_key = self._doc_key(anime_id)

        async def attempt() -> T:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(doc_key)
                raw = await pipe.get(doc_key)
                if raw is None:
                    raise AnimeNotFoundError(anime_id)
                document, result = transform(self._decode(anime_id, raw))
                pipe.multi()
                pipe.set(doc_key, stamp(document).model_dump_json())
                await pipe.execute()
                return result

        return await self._run_optimistic(anime_id, attempt)

    async def _run_optimistic(self, anime_id: str, attempt: Callable[[], Any]) -> Any:
        try:
            return await retry_with_backoff(
                attempt,
                max_retries=self.max_write_retries,
                retry_delay=self.retry_delay,
                is_transient_error=_is_write_conflict,
                description=f"write of anime {anime_id}",
            )
        except WatchError as e:
            raise ConcurrentModificationError(anime_id) from e
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to write anime {anime_id}: {e}") from e
