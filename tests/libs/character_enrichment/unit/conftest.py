"""Shared fixtures for character_enrichment unit tests.

The pipeline is assembled from real in-memory collaborators; only the AI
backends are stubbed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from character_enrichment.backends.base import (
    BackendResult,
    BackendTier,
    EnrichmentBackend,
    EnrichmentRequest,
)
from character_enrichment.config import EnrichmentPolicy
from character_enrichment.orchestrator import EnrichmentOrchestrator
from character_enrichment.repository import InMemoryAnimeRepository
from character_enrichment.scheduler import BatchScheduler
from character_enrichment.service import CharacterEnrichmentService, Principal
from common.models.anime import Anime, Character, EnrichedContent
from enrichment_cache import ConcurrencyGuard, EnrichmentCache, InMemoryKeyValueStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class StubBackend(EnrichmentBackend):
    """Backend returning scripted results and recording every request.

    Queue results on ``results``; when the queue is empty ``responder`` is
    used, and without one the call fails.
    """

    def __init__(self, tier: BackendTier) -> None:
        self.tier = tier
        self.results: list[BackendResult] = []
        self.responder: Callable[[EnrichmentRequest], BackendResult] | None = None
        self.raises: Exception | None = None
        self.delay = 0.0
        self.requests: list[EnrichmentRequest] = []

    def succeed_with(self, **fields) -> "StubBackend":
        self.results.append(BackendResult.ok(EnrichedContent(**fields)))
        return self

    def fail_with(self, error: str) -> "StubBackend":
        self.results.append(BackendResult.fail(error))
        return self

    async def enrich(self, request: EnrichmentRequest) -> BackendResult:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.results:
            return self.results.pop(0)
        if self.responder is not None:
            return self.responder(request)
        return BackendResult.fail(f"{self.tier.value} unavailable")

    @property
    def calls(self) -> int:
        return len(self.requests)


def _make_anime(anime_id: str, *names: str, title: str | None = None) -> Anime:
    return Anime(
        id=anime_id,
        title=title or f"Title {anime_id}",
        characters=[Character(name=n, key=f"char_{anime_id}_{i}") for i, n in enumerate(names)],
    )


@pytest.fixture
def policy() -> EnrichmentPolicy:
    return EnrichmentPolicy(inter_item_delay_seconds=0, inter_anime_delay_seconds=0)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def cache(kv_store) -> EnrichmentCache:
    return EnrichmentCache(kv_store, key_prefix="character_enrichment")


@pytest.fixture
def guard(kv_store, policy) -> ConcurrencyGuard:
    return ConcurrencyGuard(kv_store, default_ttl_seconds=policy.lock_ttl_seconds)


@pytest.fixture
def repository() -> InMemoryAnimeRepository:
    return InMemoryAnimeRepository(
        [_make_anime("anime_1", "Monkey D. Luffy", "Roronoa Zoro", "Nami", title="One Piece")]
    )


@pytest.fixture
def primary() -> StubBackend:
    return StubBackend(BackendTier.COMPREHENSIVE)


@pytest.fixture
def secondary() -> StubBackend:
    return StubBackend(BackendTier.DETAILED)


@pytest.fixture
def orchestrator(repository, guard, cache, primary, secondary, policy, clock):
    return EnrichmentOrchestrator(
        repository, guard, cache, [primary, secondary], policy, clock=clock
    )


@pytest.fixture
def scheduler(repository, orchestrator, policy, clock) -> BatchScheduler:
    return BatchScheduler(repository, orchestrator, policy, clock=clock)


@pytest.fixture
def service(repository, orchestrator, scheduler, cache, policy, clock):
    return CharacterEnrichmentService(
        repository, orchestrator, scheduler, cache, policy, clock=clock
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id="admin-1", is_admin=True)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_anime() -> Callable[..., Anime]:
    """Factory building an anime whose characters carry stable keys."""
    return _make_anime
