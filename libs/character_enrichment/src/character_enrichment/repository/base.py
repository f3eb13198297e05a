"""Abstract document store for anime records and their embedded characters."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from common.models.anime import Anime, Character

from ..name_matcher import locate_character

# Receives a private copy of the stored character and returns its new state
CharacterMutator = Callable[[Character], Character]


@dataclass(frozen=True)
class CharacterRef:
    """Reference to an embedded character: stable key first, name as fallback.

    Legacy records carry no key; they are located by name matching.
    """

    name: str
    key: str | None = None

    @classmethod
    def of(cls, character: Character) -> "CharacterRef":
        return cls(name=character.name, key=character.key)


@dataclass
class Page:
    """One page of a paginated anime query."""

    items: list[Anime] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def is_done(self) -> bool:
        return self.next_cursor is None


def resolve_character_index(
    characters: Sequence[Character], ref: CharacterRef
) -> int | None:
    """Locate ``ref`` in ``characters`` by key, falling back to name matching."""
    if ref.key:
        for index, character in enumerate(characters):
            if character.key == ref.key:
                return index
    return locate_character(characters, ref.name)


class AnimeRepository(ABC):
    """Persistence contract used by the enrichment pipeline.

    Character writes go through :meth:`update_character` and
    :meth:`update_characters`, which apply a mutator to the freshest stored
    state atomically per anime document. Implementations bump
    ``Anime.version`` on every write.
    """

    # ==================== Documents ====================

    @abstractmethod
    async def get(self, anime_id: str) -> Anime | None:
        """Fetch an anime document, or None if it does not exist."""
        pass

    @abstractmethod
    async def save(self, anime: Anime) -> Anime:
        """Insert or replace a whole anime document."""
        pass

    @abstractmethod
    async def patch(self, anime_id: str, updates: dict[str, Any]) -> Anime:
        """Apply top-level field updates to an existing anime.

        Raises:
            AnimeNotFoundError: If the anime does not exist.
        """
        pass

    @abstractmethod
    async def paginated_query(
        self, cursor: str | None = None, page_size: int = 20, descending: bool = True
    ) -> Page:
        """List anime ordered by insertion time (newest first when descending)."""
        pass

    # ==================== Embedded characters ====================

    @abstractmethod
    async def update_character(
        self, anime_id: str, ref: CharacterRef, mutator: CharacterMutator
    ) -> Character:
        """Atomically rewrite one embedded character.

        Returns:
            The character as persisted.

        Raises:
            AnimeNotFoundError: If the anime does not exist.
            CharacterNotFoundError: If ``ref`` matches no character.
        """
        pass

    @abstractmethod
    async def update_characters(
        self,
        anime_id: str,
        refs: Sequence[CharacterRef] | None,
        mutator: CharacterMutator,
    ) -> list[Character]:
        """Atomically rewrite several characters in one document write.

        ``refs=None`` targets every character. Refs that match nothing are
        ignored.

        Returns:
            The updated characters as persisted, in array order.

        Raises:
            AnimeNotFoundError: If the anime does not exist.
        """
        pass
