"""Datetime utility functions for enrichment tracking timestamps."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current time as a UTC-aware datetime."""
    return datetime.now(UTC)


def normalize_to_utc(date_input: str | datetime | int | float | None) -> datetime | None:
    """Standardize any date input to a UTC-aware datetime object.

    Handles ISO 8601 strings, Unix timestamps in seconds (int/float) and
    datetime objects. Naive values are assumed to already be UTC. Legacy
    records stored millisecond epoch timestamps; values above 1e11 are
    treated as milliseconds.

    Args:
        date_input: Date as ISO 8601 string, unix timestamp, or datetime object.

    Returns:
        A UTC-aware datetime object, or None if input is invalid.
    """
    if date_input is None:
        return None

    try:
        if isinstance(date_input, str):
            if not date_input:
                return None
            dt = datetime.fromisoformat(date_input.replace("Z", "+00:00"))
        elif isinstance(date_input, int | float):
            seconds = date_input / 1000 if date_input > 1e11 else date_input
            dt = datetime.fromtimestamp(seconds, tz=UTC)
        else:
            dt = date_input

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)

        return dt.astimezone(UTC)
    except (ValueError, TypeError, OSError):
        return None


def hours_since(moment: datetime | None, now: datetime | None = None) -> float:
    """Return the number of hours elapsed since ``moment``.

    A missing moment is treated as infinitely long ago so that records which
    never recorded an attempt time are always past any cooldown.

    Args:
        moment: Past timestamp, or None.
        now: Reference time; defaults to the current UTC time.

    Returns:
        Elapsed hours, or ``float("inf")`` when ``moment`` is None.
    """
    if moment is None:
        return float("inf")
    reference = normalize_to_utc(now) if now is not None else utc_now()
    start = normalize_to_utc(moment)
    if reference is None or start is None:
        return float("inf")
    return (reference - start).total_seconds() / 3600
