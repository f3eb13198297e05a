"""Build runtime dependencies for enrichment_service.

This module defines the runtime container and startup factory shared by the
HTTP app and the scheduled entry point. It selects Redis or in-memory
storage from settings and wires the enrichment pipeline together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from character_enrichment import (
    BatchScheduler,
    CharacterEnrichmentService,
    EnrichmentOrchestrator,
    EnrichmentPolicy,
    get_enrichment_policy,
)
from character_enrichment.backends import AIEnrichmentClient, BackendTier, EnrichmentBackend
from character_enrichment.repository import (
    AnimeRepository,
    InMemoryAnimeRepository,
    RedisAnimeRepository,
)
from common.config import Settings
from enrichment_cache import (
    ConcurrencyGuard,
    EnrichmentCache,
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    get_cache_config,
)
from enrichment_cache.redis_client import close_redis_client, get_redis_client
from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrichmentRuntime:
    """Runtime dependencies owned by enrichment_service."""

    service: CharacterEnrichmentService
    repository: AnimeRepository
    backends: list[EnrichmentBackend] = field(default_factory=list)
    redis_client: Redis | None = None


async def build_runtime(
    settings: Settings,
    policy: EnrichmentPolicy | None = None,
    backends: list[EnrichmentBackend] | None = None,
) -> EnrichmentRuntime:
    """Initialize runtime state for enrichment_service.

    Args:
        settings: Resolved application settings.
        policy: Retry policy; defaults to ENRICHMENT_* settings.
        backends: Enrichment backends in fallback order; defaults to the
            comprehensive and detailed HTTP clients.

    Returns:
        Runtime holding the wired service and the resources to close.
    """
    policy = policy or get_enrichment_policy()
    cache_config = get_cache_config()

    needs_redis = settings.document_store == "redis" or cache_config.storage_type == "redis"
    redis_client = await get_redis_client(settings.redis_url) if needs_redis else None

    repository: AnimeRepository
    if settings.document_store == "redis" and redis_client is not None:
        repository = RedisAnimeRepository(redis_client, key_prefix=settings.anime_key_prefix)
    else:
        logger.warning("Using in-memory anime repository; documents are not persisted")
        repository = InMemoryAnimeRepository()

    store: KeyValueStore
    if cache_config.storage_type == "redis" and redis_client is not None:
        store = RedisKeyValueStore(redis_client)
    else:
        store = InMemoryKeyValueStore()

    cache = EnrichmentCache(
        store,
        default_ttl_seconds=policy.cache_ttl_seconds,
        key_prefix=cache_config.cache_key_prefix,
        enabled=cache_config.cache_enabled,
    )
    guard = ConcurrencyGuard(store, default_ttl_seconds=policy.lock_ttl_seconds)

    if backends is None:
        backends = [
            AIEnrichmentClient(BackendTier.COMPREHENSIVE),
            AIEnrichmentClient(BackendTier.DETAILED),
        ]

    orchestrator = EnrichmentOrchestrator(repository, guard, cache, backends, policy)
    scheduler = BatchScheduler(repository, orchestrator, policy)
    service = CharacterEnrichmentService(repository, orchestrator, scheduler, cache, policy)

    policy.log_configuration()
    logger.info(
        f"Enrichment runtime ready (documents={settings.document_store}, "
        f"cache={cache_config.storage_type})"
    )
    return EnrichmentRuntime(
        service=service,
        repository=repository,
        backends=list(backends),
        redis_client=redis_client,
    )


async def close_runtime(runtime: EnrichmentRuntime) -> None:
    """Release HTTP sessions and the shared Redis client."""
    for backend in runtime.backends:
        try:
            await backend.close()
        except Exception:
            logger.exception(f"Error closing {backend.tier.value} backend")
    if runtime.redis_client is not None:
        await close_redis_client()
