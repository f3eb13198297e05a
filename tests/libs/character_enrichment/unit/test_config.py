"""Tests for enrichment policy and backend configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from character_enrichment.config import (
    SCHEDULE_PRESETS,
    AIBackendConfig,
    EnrichmentPolicy,
    get_enrichment_policy,
)


class TestEnrichmentPolicy:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            policy = EnrichmentPolicy()
        assert policy.max_attempts == 3
        assert policy.cooldown_hours == 24
        assert policy.lock_ttl_seconds == 120
        assert policy.cache_ttl_seconds == 30 * 24 * 60 * 60
        assert policy.inter_item_delay_seconds == 2.0
        assert policy.inter_anime_delay_seconds == 3.0
        assert policy.min_name_length == 2
        assert policy.default_characters_per_anime == 5
        assert policy.default_anime_batch_size == 3
        assert policy.candidate_page_multiplier == 2
        assert policy.max_concurrent_characters == 1

    def test_environment_overrides(self):
        env = {"ENRICHMENT_MAX_ATTEMPTS": "5", "ENRICHMENT_COOLDOWN_HOURS": "6"}
        with patch.dict(os.environ, env, clear=True):
            policy = get_enrichment_policy()
        assert policy.max_attempts == 5
        assert policy.cooldown_hours == 6

    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_attempts", 0),
            ("cooldown_hours", -1),
            ("lock_ttl_seconds", 0.5),
            ("lock_ttl_seconds", 7200),
            ("default_anime_batch_size", 0),
            ("max_concurrent_characters", 0),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            EnrichmentPolicy(**{field: value})


class TestAIBackendConfig:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = AIBackendConfig()
        assert config.max_retries == 3
        assert config.api_key is None

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            AIBackendConfig(request_timeout=0)


def test_schedule_presets_match_cadences():
    assert SCHEDULE_PRESETS["frequent"].anime_batch_size == 2
    assert SCHEDULE_PRESETS["frequent"].characters_per_anime == 3
    assert SCHEDULE_PRESETS["hourly"].anime_batch_size == 3
    assert SCHEDULE_PRESETS["daily"].anime_batch_size == 10
    assert SCHEDULE_PRESETS["weekly"].anime_batch_size == 20
    assert SCHEDULE_PRESETS["weekly"].include_retries is True
