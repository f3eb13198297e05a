"""Document store adapters for anime records."""

from .base import AnimeRepository, CharacterMutator, CharacterRef, Page, resolve_character_index
from .memory import InMemoryAnimeRepository
from .redis_store import RedisAnimeRepository

__all__ = [
    "AnimeRepository",
    "CharacterMutator",
    "CharacterRef",
    "InMemoryAnimeRepository",
    "Page",
    "RedisAnimeRepository",
    "resolve_character_index",
]
