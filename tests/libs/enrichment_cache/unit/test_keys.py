"""Tests for cache and lock key construction."""

from enrichment_cache.keys import character_cache_key, lock_key


def test_cache_key_lowercases_and_trims_name():
    key = character_cache_key("anime_1", "  Monkey D. Luffy ", prefix="character_enrichment")
    assert key == "character_enrichment:anime_1:monkey d. luffy"


def test_cache_key_uses_configured_prefix_by_default():
    assert character_cache_key("anime_1", "Zoro").startswith("character_enrichment:")


def test_long_names_are_hashed():
    key = character_cache_key("anime_1", "x" * 300, prefix="ce", max_length=50)
    prefix, anime_id, name_part = key.split(":")
    assert (prefix, anime_id) == ("ce", "anime_1")
    assert len(name_part) == 64


def test_case_variants_share_a_key():
    assert character_cache_key("a", "LUFFY", prefix="ce") == character_cache_key(
        "a", "luffy", prefix="ce"
    )


def test_lock_key_appends_suffix():
    assert lock_key("ce:1:luffy") == "ce:1:luffy:lock"
