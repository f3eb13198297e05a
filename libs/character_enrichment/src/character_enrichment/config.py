"""
Configuration for the character enrichment pipeline.

Retry, cooldown, lock, cache and pacing constants live in one injectable
policy object so each deployment and each test can override them.
"""

import logging
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class EnrichmentPolicy(BaseSettings):
    """
    Retry and pacing policy shared by the locator, orchestrator and scheduler.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENRICHMENT_", case_sensitive=False, extra="ignore"
    )

    # Retry eligibility
    max_attempts: int = Field(
        default=3, description="Failed characters are retried while attempts stay below this"
    )
    cooldown_hours: float = Field(
        default=24.0, description="Minimum hours between a failure and its retry"
    )
    min_name_length: int = Field(
        default=2, description="Names shorter than this (after trimming) are skipped"
    )

    # Locks & cache
    lock_ttl_seconds: float = Field(
        default=120.0, description="TTL of the in-flight lock per (anime, character)"
    )
    cache_ttl_seconds: float = Field(
        default=30 * 24 * 60 * 60, description="TTL of cached enrichment results (30 days)"
    )

    # Pacing
    inter_item_delay_seconds: float = Field(
        default=2.0, description="Delay between characters to respect upstream rate limits"
    )
    inter_anime_delay_seconds: float = Field(
        default=3.0, description="Delay between anime in a batch"
    )

    # Batch shaping
    default_anime_batch_size: int = Field(
        default=3, description="Anime processed per batch run"
    )
    default_characters_per_anime: int = Field(
        default=5, description="Characters enriched per anime"
    )
    candidate_page_multiplier: int = Field(
        default=2, description="Candidate page size as a multiple of the anime batch size"
    )
    max_concurrent_characters: int = Field(
        default=1,
        description="Worker pool size across distinct characters of one anime (1 = sequential)",
    )

    @field_validator("max_attempts", "min_name_length", "candidate_page_multiplier")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator(
        "cooldown_hours",
        "cache_ttl_seconds",
        "inter_item_delay_seconds",
        "inter_anime_delay_seconds",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Value must be non-negative")
        return v

    @field_validator("lock_ttl_seconds")
    @classmethod
    def validate_lock_ttl(cls, v: float) -> float:
        """
        Validate that the lock TTL is between 1 second and 1 hour.

        Raises:
            ValueError: If `v` is outside that range.
        """
        if v < 1 or v > 3600:
            raise ValueError("Lock TTL must be between 1 and 3600 seconds")
        return v

    @field_validator("default_anime_batch_size", "default_characters_per_anime")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("Batch size must be between 1 and 100")
        return v

    @field_validator("max_concurrent_characters")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1 or v > 16:
            raise ValueError("max_concurrent_characters must be between 1 and 16")
        return v

    def log_configuration(self) -> None:
        """Log current policy for debugging."""
        logger.info("Character Enrichment Policy:")
        logger.info(f"  Max Attempts: {self.max_attempts}")
        logger.info(f"  Retry Cooldown: {self.cooldown_hours}h")
        logger.info(f"  Lock TTL: {self.lock_ttl_seconds}s")
        logger.info(f"  Cache TTL: {self.cache_ttl_seconds}s")
        logger.info(
            f"  Delays: {self.inter_item_delay_seconds}s per character, "
            f"{self.inter_anime_delay_seconds}s per anime"
        )
        logger.info(f"  Character Workers: {self.max_concurrent_characters}")


class AIBackendConfig(BaseSettings):
    """Connection settings for the external AI enrichment service."""

    model_config = SettingsConfigDict(
        env_prefix="AI_BACKEND_", case_sensitive=False, extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8020/api/v1",
        description="Base URL of the AI enrichment service",
    )
    api_key: str | None = Field(default=None, description="Bearer token for the service")
    request_timeout: float = Field(
        default=90.0, description="Timeout for one generation request in seconds"
    )
    max_retries: int = Field(
        default=3, description="Attempts per request when rate limited (HTTP 429)"
    )
    min_interval_seconds: float = Field(
        default=0.5, description="Minimum spacing between request starts"
    )
    max_per_minute: int = Field(
        default=30, description="Maximum request starts in any rolling minute"
    )

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0 or v > 600:
            raise ValueError("Request timeout must be between 0 and 600 seconds")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_retries must be at least 1")
        return v


class SchedulePreset(BaseModel):
    """Batch shape used by one scheduled enrichment cadence."""

    anime_batch_size: int
    characters_per_anime: int
    include_retries: bool = False


# Cadences run by the scheduler collaborator (cron)
SCHEDULE_PRESETS: dict[str, SchedulePreset] = {
    "frequent": SchedulePreset(anime_batch_size=2, characters_per_anime=3),
    "hourly": SchedulePreset(anime_batch_size=3, characters_per_anime=5),
    "daily": SchedulePreset(anime_batch_size=10, characters_per_anime=5),
    "weekly": SchedulePreset(
        anime_batch_size=20, characters_per_anime=5, include_retries=True
    ),
}


@lru_cache
def get_enrichment_policy() -> EnrichmentPolicy:
    """Get cached EnrichmentPolicy populated from ENRICHMENT_* variables."""
    return EnrichmentPolicy()


@lru_cache
def get_ai_backend_config() -> AIBackendConfig:
    """Get cached AIBackendConfig populated from AI_BACKEND_* variables."""
    return AIBackendConfig()
