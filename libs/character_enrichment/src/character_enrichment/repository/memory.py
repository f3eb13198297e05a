"""In-process anime repository for development and tests."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from common.models.anime import Anime, Character

from ..exceptions import AnimeNotFoundError
from ._mutations import (
    apply_bulk_mutation,
    apply_character_mutation,
    apply_patch,
    assign_character_keys,
    stamp,
)
from .base import AnimeRepository, CharacterMutator, CharacterRef, Page

logger = logging.getLogger(__name__)


class InMemoryAnimeRepository(AnimeRepository):
    """Dictionary-backed repository.

    Documents are copied on the way in and out, so callers never share
    state with the store. Writes to one anime are serialized by a per-anime
    ``asyncio.Lock``.
    """

    def __init__(self, documents: Sequence[Anime] = ()) -> None:
        self._documents: dict[str, Anime] = {}
        # insertion order, oldest first
        self._order: list[str] = []
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        for anime in documents:
            self._insert(assign_character_keys(anime.model_copy(deep=True)))

    def _insert(self, anime: Anime) -> None:
        if anime.id not in self._documents:
            self._order.append(anime.id)
        self._documents[anime.id] = anime

    def _require(self, anime_id: str) -> Anime:
        anime = self._documents.get(anime_id)
        if anime is None:
            raise AnimeNotFoundError(anime_id)
        return anime

    async def get(self, anime_id: str) -> Anime | None:
        anime = self._documents.get(anime_id)
        return anime.model_copy(deep=True) if anime else None

    async def save(self, anime: Anime) -> Anime:
        async with self._locks[anime.id]:
            stored = assign_character_keys(anime.model_copy(deep=True))
            existing = self._documents.get(anime.id)
            stored.version = existing.version if existing else stored.version
            self._insert(stamp(stored))
            return stored.model_copy(deep=True)

    async def patch(self, anime_id: str, updates: dict[str, Any]) -> Anime:
        async with self._locks[anime_id]:
            patched = stamp(apply_patch(self._require(anime_id), updates))
            self._documents[anime_id] = patched
            return patched.model_copy(deep=True)

    async def paginated_query(
        self, cursor: str | None = None, page_size: int = 20, descending: bool = True
    ) -> Page:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        ids = list(reversed(self._order)) if descending else list(self._order)
        start = int(cursor) if cursor else 0
        window = ids[start : start + page_size]
        next_start = start + page_size
        return Page(
            items=[self._documents[i].model_copy(deep=True) for i in window],
            next_cursor=str(next_start) if next_start < len(ids) else None,
        )

    async def update_character(
        self, anime_id: str, ref: CharacterRef, mutator: CharacterMutator
    ) -> Character:
        async with self._locks[anime_id]:
            working = self._require(anime_id).model_copy(deep=True)
            updated = apply_character_mutation(working, ref, mutator)
            self._documents[anime_id] = stamp(working)
            return updated.model_copy(deep=True)

    async def update_characters(
        self,
        anime_id: str,
        refs: Sequence[CharacterRef] | None,
        mutator: CharacterMutator,
    ) -> list[Character]:
        async with self._locks[anime_id]:
            working = self._require(anime_id).model_copy(deep=True)
            updated = apply_bulk_mutation(working, refs, mutator)
            if updated:
                self._documents[anime_id] = stamp(working)
            return [c.model_copy(deep=True) for c in updated]
