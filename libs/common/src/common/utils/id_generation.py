"""Identity generation utilities using ULID and deterministic hashing.

This module provides standard functions for generating:
1. Unique Lexicographically Sortable Identifiers (ULID) for primary entities.
2. Deterministic SHA-256 keys for embedded characters based on their origin.
3. Per-call idempotency tokens for AI backend requests.
"""

import hashlib
import re
from typing import Literal

from ulid import ULID

EntityType = Literal["anime", "character", "request"]

ENTITY_PREFIXES: dict[EntityType, str] = {
    "anime": "anime_",
    "character": "char_",
    "request": "req_",
}

_NON_WORD = re.compile(r"\W")


def generate_ulid(entity_type: EntityType) -> str:
    """Generate a new random, time-sortable ULID with entity prefix.

    Args:
        entity_type: The type of entity (e.g. 'anime')

    Returns:
        Prefixed ULID string (e.g., 'anime_01ARZ3NDEKTSV4RRFFQ69G5FAV')
    """
    prefix = ENTITY_PREFIXES.get(entity_type, f"{entity_type}_")
    return f"{prefix}{ULID()}"


def generate_deterministic_id(seed: str, entity_type: EntityType | None = None) -> str:
    """Generate a deterministic ID based on a unique seed string.

    Args:
        seed: Unique string content to hash
        entity_type: Optional prefix to add to the hash

    Returns:
        Prefixed short hash (16 chars)
    """
    short_hash = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:16]

    if entity_type:
        prefix = ENTITY_PREFIXES.get(entity_type, f"{entity_type}_")
        return f"{prefix}{short_hash}"

    return short_hash


def generate_character_key(anime_id: str, source_id: str | int) -> str:
    """Generate the stable key of a character embedded in an anime.

    The key is derived from the parent anime id and the character's id at its
    external source (or its ingestion-time name when no source id exists), so
    re-ingesting the same anime yields the same keys.

    Args:
        anime_id: Identifier of the parent anime.
        source_id: External source id, or the original name as a fallback.

    Returns:
        Deterministic key string (e.g. 'char_1a2b3c4d5e6f7a8b')
    """
    return generate_deterministic_id(f"{anime_id}_{source_id}", "character")


def generate_idempotency_token(tier: str, character_name: str) -> str:
    """Generate a unique token identifying one AI backend call.

    Args:
        tier: Backend tier name ('comprehensive' or 'detailed').
        character_name: Character being enriched; non-word characters become '_'.

    Returns:
        Token such as 'req_comprehensive_Monkey_D__Luffy_01ARZ3NDEK...'
    """
    safe_name = _NON_WORD.sub("_", character_name)
    return f"{ENTITY_PREFIXES['request']}{tier}_{safe_name}_{ULID()}"
