"""
Character name matching.

Characters have no globally unique identity; inside an anime they are
identified by name, and names drift between ingestion and enrichment
("Monkey D. Luffy" vs "monkey d luffy"). Matching runs three passes over the
character list and the first pass with a hit wins:

1. exact raw equality
2. normalized equality (primary and alternative names)
3. fuzzy containment with a length ratio above FUZZY_LENGTH_RATIO
"""

import logging
import re
from collections.abc import Sequence

from common.models.anime import Character

logger = logging.getLogger(__name__)

FUZZY_LENGTH_RATIO = 0.8

_NON_ALNUM = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_character_name(name: str) -> str:
    """Normalize a name for comparison.

    Trims, lowercases, drops every character that is not alphanumeric or
    whitespace (underscore included) and collapses runs of whitespace.

    Examples:
        >>> normalize_character_name("  Monkey D. Luffy ")
        'monkey d luffy'
        >>> normalize_character_name("Roronoa_Zoro")
        'roronoazoro'
    """
    lowered = name.strip().lower()
    stripped = _NON_ALNUM.sub("", lowered)
    return _WHITESPACE.sub(" ", stripped).strip()


def _candidate_names(character: Character) -> list[str]:
    return [character.name, *character.alternative_names]


def is_fuzzy_match(a: str, b: str) -> bool:
    """Containment match between two normalized names.

    One name must contain the other and the shorter must be more than
    FUZZY_LENGTH_RATIO of the longer, so "Luffy" does not match
    "Monkey D. Luffy" while "Edward Elric" matches "Edward Elrics".
    """
    if not a or not b:
        return False
    if a not in b and b not in a:
        return False
    shorter, longer = sorted((len(a), len(b)))
    return shorter / longer > FUZZY_LENGTH_RATIO


def locate_character(characters: Sequence[Character], target_name: str) -> int | None:
    """Find the index of the character best matching ``target_name``.

    Returns:
        Index of the first match in array order for the highest-priority pass,
        or None when nothing matches.
    """
    for index, character in enumerate(characters):
        if character.name == target_name:
            return index

    normalized_target = normalize_character_name(target_name)
    if not normalized_target:
        return None

    for index, character in enumerate(characters):
        for candidate in _candidate_names(character):
            if normalize_character_name(candidate) == normalized_target:
                return index

    for index, character in enumerate(characters):
        if is_fuzzy_match(normalize_character_name(character.name), normalized_target):
            logger.debug(
                f"Fuzzy matched '{target_name}' to '{character.name}' at index {index}"
            )
            return index

    return None
