"""
Single-character enrichment.

The orchestrator drives one character through the enrichment state machine:
lock, mark pending, consult the cache, call the comprehensive backend, fall
back to the detailed backend, then persist success or failure. Every
document write goes through ``AnimeRepository.update_character`` so that it
applies to the freshest stored state of the anime.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from common.models.anime import Anime, Character, EnrichedContent, EnrichmentStatus
from common.utils.datetime_utils import utc_now
from common.utils.id_generation import generate_idempotency_token
from enrichment_cache import ConcurrencyGuard, EnrichmentCache, character_cache_key, lock_key
from pydantic import ValidationError

from .backends.base import BackendResult, EnrichmentBackend, EnrichmentRequest
from .config import EnrichmentPolicy
from .exceptions import (
    AnimeNotFoundError,
    BackendError,
    CharacterNotFoundError,
    ConcurrentModificationError,
    NameTooShortError,
    StoreUnavailableError,
)
from .repository import AnimeRepository, CharacterRef, resolve_character_index

logger = logging.getLogger(__name__)


class _AlreadySettled(Exception):
    """The stored character no longer needs an automatic enrichment."""

    def __init__(self, character: Character):
        self.character = character
        super().__init__(character.name)


class OutcomeStatus(str, Enum):
    """Result of one orchestration."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    IN_PROGRESS = "in_progress"
    NOT_FOUND = "not_found"


@dataclass
class EnrichmentOutcome:
    status: OutcomeStatus
    character: Character | None = None
    from_cache: bool = False
    # True once the character was marked pending by this orchestration
    triggered: bool = False
    error: str | None = None
    backend: str | None = None


class EnrichmentOrchestrator:
    """Enrich one character at a time against tiered backends.

    Args:
        repository: Document store holding the anime.
        guard: Per-character in-flight lock.
        cache: Result cache of successful enrichments.
        backends: Backends in fallback order (comprehensive, then detailed).
        policy: Retry and lock policy.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        repository: AnimeRepository,
        guard: ConcurrencyGuard,
        cache: EnrichmentCache,
        backends: Sequence[EnrichmentBackend],
        policy: EnrichmentPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not backends:
            raise ValueError("At least one enrichment backend is required")
        self.repository = repository
        self.guard = guard
        self.cache = cache
        self.backends = list(backends)
        self.policy = policy
        self._clock = clock

    def cache_key(self, anime_id: str, character_name: str) -> str:
        return character_cache_key(anime_id, character_name, prefix=self.cache.key_prefix)

    async def enrich_one(
        self, anime: Anime, character: Character, force_refresh: bool = False
    ) -> EnrichmentOutcome:
        """Run the full enrichment flow for ``character`` of ``anime``.

        Never raises for per-character problems: they are reported through the
        returned outcome and persisted on the character. Only
        ``StoreUnavailableError`` propagates.
        """
        ref = CharacterRef.of(character)

        if len(character.name.strip()) < self.policy.min_name_length:
            return await self._skip(anime.id, ref, NameTooShortError(character.name))

        cache_key = self.cache_key(anime.id, character.name)
        lock = lock_key(cache_key)

        token = await self.guard.try_acquire(lock, self.policy.lock_ttl_seconds)
        if token is None:
            logger.info(f"Enrichment of '{character.name}' ({anime.id}) already in progress")
            return EnrichmentOutcome(
                status=OutcomeStatus.IN_PROGRESS,
                character=await self._current(anime.id, ref),
            )

        try:
            return await self._enrich_locked(anime, ref, cache_key, force_refresh)
        except StoreUnavailableError:
            raise
        except (AnimeNotFoundError, CharacterNotFoundError) as e:
            logger.warning(f"Character vanished during enrichment: {e}")
            return EnrichmentOutcome(status=OutcomeStatus.NOT_FOUND, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error enriching '{character.name}' ({anime.id})")
            return await self._fail(anime.id, ref, f"Unexpected error: {e}", triggered=True)
        finally:
            await self.guard.release(lock, token)

    async def _enrich_locked(
        self, anime: Anime, ref: CharacterRef, cache_key: str, force_refresh: bool
    ) -> EnrichmentOutcome:
        started_at = self._clock()

        def mark_pending(c: Character) -> Character:
            if not force_refresh and (
                c.enrichment.status == EnrichmentStatus.SUCCESS or c.manual_protection.protected
            ):
                raise _AlreadySettled(c.model_copy(deep=True))
            c.enrichment.status = EnrichmentStatus.PENDING
            c.enrichment.attempts += 1
            c.enrichment.last_attempt_at = started_at
            return c

        try:
            pending = await self.repository.update_character(anime.id, ref, mark_pending)
        except _AlreadySettled as settled:
            current = settled.character
            if current.enrichment.status == EnrichmentStatus.SUCCESS:
                logger.info(f"'{current.name}' of '{anime.title}' was enriched since selection")
                return EnrichmentOutcome(status=OutcomeStatus.SUCCESS, character=current)
            logger.info(f"'{current.name}' of '{anime.title}' is manually protected")
            return EnrichmentOutcome(
                status=OutcomeStatus.SKIPPED, character=current, error="manually protected"
            )

        logger.info(
            f"Enriching '{pending.name}' of '{anime.title}' "
            f"(attempt {pending.enrichment.attempts})"
        )

        if not force_refresh:
            cached = await self._cached_content(cache_key)
            if cached is not None:
                updated = await self._persist_success(anime.id, ref, cached)
                logger.info(f"Enriched '{updated.name}' from cache")
                return EnrichmentOutcome(
                    status=OutcomeStatus.SUCCESS,
                    character=updated,
                    from_cache=True,
                    triggered=True,
                )

        last_error = "no backend produced content"
        for backend in self.backends:
            request = EnrichmentRequest(
                character_name=pending.name,
                anime_title=anime.title,
                known_fields=pending.known_fields(),
                idempotency_token=generate_idempotency_token(backend.tier.value, pending.name),
            )
            result = await self._call_backend(backend, request)
            if result.usable and result.payload is not None:
                updated = await self._persist_success(anime.id, ref, result.payload)
                await self.cache.set(
                    cache_key,
                    updated.model_dump(mode="json"),
                    self.policy.cache_ttl_seconds,
                )
                logger.info(f"Enriched '{updated.name}' via {backend.tier.value} backend")
                return EnrichmentOutcome(
                    status=OutcomeStatus.SUCCESS,
                    character=updated,
                    triggered=True,
                    backend=backend.tier.value,
                )

            last_error = result.error or "empty payload"
            logger.warning(
                f"{backend.tier.value} backend failed for '{pending.name}': {last_error}"
            )

        return await self._fail(anime.id, ref, last_error, triggered=True)

    async def _call_backend(
        self, backend: EnrichmentBackend, request: EnrichmentRequest
    ) -> BackendResult:
        try:
            return await backend.enrich(request)
        except BackendError as e:
            return BackendResult.fail(str(e))

    async def _cached_content(self, cache_key: str) -> EnrichedContent | None:
        cached = await self.cache.get(cache_key)
        if cached is None:
            return None
        try:
            content = EnrichedContent.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid cache entry {cache_key}: {e.error_count()} errors")
            return None
        return content if content.has_content() else None

    async def _persist_success(
        self, anime_id: str, ref: CharacterRef, content: EnrichedContent
    ) -> Character:
        finished_at = self._clock()
        updates = content.content_updates()

        def mark_success(c: Character) -> Character:
            for name, value in updates.items():
                setattr(c, name, value)
            c.enrichment.status = EnrichmentStatus.SUCCESS
            c.enrichment.enriched_at = finished_at
            c.enrichment.last_error = None
            return c

        return await self.repository.update_character(anime_id, ref, mark_success)

    async def _fail(
        self, anime_id: str, ref: CharacterRef, error: str, triggered: bool
    ) -> EnrichmentOutcome:
        def mark_failed(c: Character) -> Character:
            c.enrichment.status = EnrichmentStatus.FAILED
            c.enrichment.last_error = error
            return c

        try:
            failed = await self.repository.update_character(anime_id, ref, mark_failed)
        except (AnimeNotFoundError, CharacterNotFoundError) as e:
            logger.warning(f"Could not record failure, character vanished: {e}")
            return EnrichmentOutcome(status=OutcomeStatus.NOT_FOUND, error=str(e))
        except ConcurrentModificationError as e:
            logger.warning(f"Could not record failure for '{ref.name}' ({anime_id}): {e}")
            return EnrichmentOutcome(
                status=OutcomeStatus.FAILED, triggered=triggered, error=error
            )

        logger.error(f"Enrichment failed for '{failed.name}' ({anime_id}): {error}")
        return EnrichmentOutcome(
            status=OutcomeStatus.FAILED, character=failed, triggered=triggered, error=error
        )

    async def _skip(
        self, anime_id: str, ref: CharacterRef, reason: NameTooShortError
    ) -> EnrichmentOutcome:
        now = self._clock()

        def mark_skipped(c: Character) -> Character:
            c.enrichment.status = EnrichmentStatus.SKIPPED
            c.enrichment.attempts += 1
            c.enrichment.last_attempt_at = now
            c.enrichment.last_error = str(reason)
            return c

        try:
            skipped = await self.repository.update_character(anime_id, ref, mark_skipped)
        except (AnimeNotFoundError, CharacterNotFoundError) as e:
            logger.warning(f"Could not record skip, character vanished: {e}")
            return EnrichmentOutcome(status=OutcomeStatus.NOT_FOUND, error=str(e))
        except ConcurrentModificationError as e:
            logger.warning(f"Could not record skip for '{ref.name}' ({anime_id}): {e}")
            return EnrichmentOutcome(status=OutcomeStatus.SKIPPED, error=str(reason))

        logger.info(f"Skipped '{ref.name}' ({anime_id}): {reason}")
        return EnrichmentOutcome(
            status=OutcomeStatus.SKIPPED, character=skipped, error=str(reason)
        )

    async def _current(self, anime_id: str, ref: CharacterRef) -> Character | None:
        anime = await self.repository.get(anime_id)
        if anime is None:
            return None
        index = resolve_character_index(anime.characters, ref)
        return anime.characters[index] if index is not None else None
