"""
Selection of characters that are eligible for enrichment.

Pure functions over a character list; the retry policy and the clock are
passed in so that selection is deterministic under test.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from common.models.anime import Character, EnrichmentStatus
from common.utils.datetime_utils import hours_since, utc_now

from .config import EnrichmentPolicy

UNSET_STATUS = "unset"


def is_eligible(
    character: Character,
    include_retries: bool,
    policy: EnrichmentPolicy,
    now: datetime | None = None,
) -> bool:
    """Decide whether a single character should be enriched now."""
    if character.manual_protection.protected:
        return False

    state = character.enrichment
    if state.status is None or state.status == EnrichmentStatus.PENDING:
        return True

    if include_retries and state.status == EnrichmentStatus.FAILED:
        return (
            state.attempts < policy.max_attempts
            and hours_since(state.last_attempt_at, now) > policy.cooldown_hours
        )

    return False


def select_eligible(
    characters: Sequence[Character],
    include_retries: bool,
    policy: EnrichmentPolicy,
    now: datetime | None = None,
) -> list[Character]:
    """Return eligible characters in their original array order.

    Args:
        characters: Characters of one anime.
        include_retries: Whether failed characters past their cooldown qualify.
        policy: Retry policy (max attempts and cooldown).
        now: Reference time for the cooldown; defaults to the current UTC time.
    """
    reference = now or utc_now()
    return [c for c in characters if is_eligible(c, include_retries, policy, reference)]


def count_by_status(characters: Sequence[Character]) -> dict[str, int]:
    """Count characters per enrichment status; never-attempted ones count as 'unset'."""
    counts: Counter[str] = Counter(
        c.enrichment.status.value if c.enrichment.status else UNSET_STATUS
        for c in characters
    )
    result = {UNSET_STATUS: 0, **{status.value: 0 for status in EnrichmentStatus}}
    result.update(counts)
    return result
