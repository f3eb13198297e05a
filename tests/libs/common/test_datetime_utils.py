"""Tests for datetime utility functions."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from common.utils.datetime_utils import hours_since, normalize_to_utc, utc_now


class TestNormalizeToUtc:
    def test_none_returns_none(self):
        assert normalize_to_utc(None) is None

    def test_empty_string_returns_none(self):
        assert normalize_to_utc("") is None

    def test_invalid_string_returns_none(self):
        assert normalize_to_utc("not a date") is None

    def test_iso_string_with_z_suffix(self):
        result = normalize_to_utc("2024-01-01T12:00:00Z")
        assert result == datetime(2024, 1, 1, 12, tzinfo=UTC)

    def test_naive_datetime_assumed_utc(self):
        result = normalize_to_utc(datetime(2024, 1, 1, 12))
        assert result is not None
        assert result.tzinfo is not None
        assert result.hour == 12

    def test_offset_datetime_converted_to_utc(self):
        tz = timezone(timedelta(hours=2))
        result = normalize_to_utc(datetime(2024, 1, 1, 12, tzinfo=tz))
        assert result == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_unix_seconds(self):
        assert normalize_to_utc(0) == datetime(1970, 1, 1, tzinfo=UTC)

    def test_millisecond_timestamps_detected(self):
        ms = 1_704_110_400_000  # 2024-01-01T12:00:00Z
        assert normalize_to_utc(ms) == datetime(2024, 1, 1, 12, tzinfo=UTC)


class TestHoursSince:
    def test_missing_moment_is_infinitely_old(self):
        assert hours_since(None) == float("inf")

    def test_elapsed_hours(self):
        now = datetime(2024, 1, 2, 12, tzinfo=UTC)
        then = datetime(2024, 1, 1, 12, tzinfo=UTC)
        assert hours_since(then, now) == pytest.approx(24.0)

    def test_defaults_to_current_time(self):
        then = utc_now() - timedelta(hours=2)
        assert hours_since(then) == pytest.approx(2.0, abs=0.01)
