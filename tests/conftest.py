"""
Root test configuration for all tests.

Pins the environment to development and resets cached settings singletons
so that tests never pick up production configuration or leak overrides.
"""

import os
from collections.abc import Generator

import pytest

os.environ.setdefault("APP_ENV", "development")


@pytest.fixture(autouse=True)
def reset_settings_caches() -> Generator[None, None, None]:
    """Clear every ``lru_cache`` settings accessor around each test."""
    from character_enrichment.backends.rate_limiter import get_shared_rate_limiter
    from character_enrichment.config import get_ai_backend_config, get_enrichment_policy
    from common.config.settings import get_settings
    from enrichment_cache.config import get_cache_config

    accessors = (
        get_settings,
        get_cache_config,
        get_enrichment_policy,
        get_ai_backend_config,
        get_shared_rate_limiter,
    )
    for accessor in accessors:
        accessor.cache_clear()
    yield
    for accessor in accessors:
        accessor.cache_clear()
