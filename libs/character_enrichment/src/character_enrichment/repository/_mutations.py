"""Document transforms shared by repository implementations."""

from collections.abc import Sequence
from typing import Any

from common.models.anime import Anime, Character
from common.utils.datetime_utils import utc_now
from common.utils.id_generation import generate_character_key

from ..exceptions import CharacterNotFoundError
from .base import CharacterMutator, CharacterRef, resolve_character_index

_IMMUTABLE_FIELDS = frozenset({"id", "version", "updated_at"})


def stamp(anime: Anime) -> Anime:
    """Bump the document version and modification time in place."""
    anime.version += 1
    anime.updated_at = utc_now()
    return anime


def assign_character_keys(anime: Anime) -> Anime:
    """Give characters ingested without a stable key one derived from their name."""
    for character in anime.characters:
        if not character.key:
            character.key = generate_character_key(anime.id, character.name)
    return anime


def apply_character_mutation(
    anime: Anime, ref: CharacterRef, mutator: CharacterMutator
) -> Character:
    index = resolve_character_index(anime.characters, ref)
    if index is None:
        raise CharacterNotFoundError(anime.id, ref.name)
    updated = mutator(anime.characters[index].model_copy(deep=True))
    anime.characters[index] = updated
    return updated


def apply_bulk_mutation(
    anime: Anime, refs: Sequence[CharacterRef] | None, mutator: CharacterMutator
) -> list[Character]:
    if refs is None:
        indexes = list(range(len(anime.characters)))
    else:
        found = {resolve_character_index(anime.characters, ref) for ref in refs}
        indexes = sorted(i for i in found if i is not None)

    updated = []
    for index in indexes:
        anime.characters[index] = mutator(anime.characters[index].model_copy(deep=True))
        updated.append(anime.characters[index])
    return updated


def apply_patch(anime: Anime, updates: dict[str, Any]) -> Anime:
    """Return a validated copy of ``anime`` with top-level ``updates`` applied."""
    blocked = _IMMUTABLE_FIELDS.intersection(updates)
    if blocked:
        raise ValueError(f"Cannot patch managed fields: {sorted(blocked)}")
    merged = {**anime.model_dump(), **updates}
    return Anime.model_validate(merged)
