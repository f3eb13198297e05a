"""Key construction for enrichment cache entries and locks."""

import hashlib

from .config import get_cache_config

LOCK_SUFFIX = ":lock"


def character_cache_key(
    anime_id: str,
    character_name: str,
    prefix: str | None = None,
    max_length: int | None = None,
) -> str:
    """Build the cache key of one character's enrichment result.

    The character part is lowercased so that case variants of a name share an
    entry. Keys longer than the configured maximum keep their prefix and anime
    id readable and hash the name.

    Args:
        anime_id: Identifier of the parent anime.
        character_name: Character name.
        prefix: Key namespace; defaults to ``CacheConfig.cache_key_prefix``.
        max_length: Hashing threshold; defaults to ``CacheConfig.max_cache_key_length``.

    Returns:
        Key such as ``character_enrichment:anime_01H...:naruto uzumaki``.
    """
    config = get_cache_config()
    prefix = prefix or config.cache_key_prefix
    max_length = max_length or config.max_cache_key_length

    key = f"{prefix}:{anime_id}:{character_name.strip().lower()}"
    if len(key) > max_length:
        name_hash = hashlib.sha256(character_name.strip().lower().encode()).hexdigest()
        return f"{prefix}:{anime_id}:{name_hash}"
    return key


def lock_key(cache_key: str) -> str:
    """Return the in-flight lock key paired with a cache key."""
    return f"{cache_key}{LOCK_SUFFIX}"
