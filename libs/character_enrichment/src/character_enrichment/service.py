"""
Operation facade of the character enrichment pipeline.

``CharacterEnrichmentService`` is what the HTTP app and the scheduled entry
point talk to. It wires the locator, orchestrator, scheduler and cache
together and enforces admin gating on destructive operations.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from common.models.anime import Character, EnrichmentStatus
from common.utils.datetime_utils import utc_now
from enrichment_cache import CacheStatistics, EnrichmentCache
from pydantic import BaseModel, Field, ValidationError

from .config import EnrichmentPolicy
from .exceptions import AdminAccessError, AnimeNotFoundError, CharacterNotFoundError
from .locator import UNSET_STATUS, count_by_status, select_eligible
from .name_matcher import locate_character
from .orchestrator import EnrichmentOrchestrator, OutcomeStatus
from .repository import AnimeRepository, CharacterRef
from .scheduler import BatchReport, BatchScheduler

logger = logging.getLogger(__name__)

OnDemandStatus = Literal["success", "failed", "error", "not_found", "in_progress", "skipped"]
ResetTarget = Literal["pending", "failed"]


@dataclass(frozen=True)
class Principal:
    """Caller identity as far as the pipeline cares."""

    user_id: str | None = None
    is_admin: bool = False

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()


class OnDemandResult(BaseModel):
    from_cache: bool = False
    triggered: bool = False
    enriched: bool = False
    status: OnDemandStatus
    character: Character | None = None
    message: str


class ResetResult(BaseModel):
    characters_reset: int
    reset_to: ResetTarget


class CharacterStatusDetail(BaseModel):
    anime_title: str
    character_name: str
    status: str
    attempts: int
    last_error: str | None = None
    last_attempt_at: datetime | None = None
    protected: bool = False


class EnrichmentStatusReport(BaseModel):
    """Per-status counters over one anime or a sample of anime."""

    total_anime: int = 0
    total_characters: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    character_details: list[CharacterStatusDetail] = Field(default_factory=list)


class CharacterEnrichmentService:
    """Entry points for batch, on-demand and admin enrichment operations."""

    def __init__(
        self,
        repository: AnimeRepository,
        orchestrator: EnrichmentOrchestrator,
        scheduler: BatchScheduler,
        cache: EnrichmentCache,
        policy: EnrichmentPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.orchestrator = orchestrator
        self.scheduler = scheduler
        self.cache = cache
        self.policy = policy
        self._clock = clock

    # ==================== Selection & batches ====================

    async def select_eligible(
        self, anime_id: str, include_retries: bool = False
    ) -> list[Character]:
        anime = await self.repository.get(anime_id)
        if anime is None:
            raise AnimeNotFoundError(anime_id)
        return select_eligible(anime.characters, include_retries, self.policy, self._clock())

    async def enrich_anime(
        self,
        anime_id: str,
        max_characters: int | None = None,
        include_retries: bool = False,
    ) -> BatchReport:
        return await self.scheduler.enrich_anime(anime_id, max_characters, include_retries)

    async def enrich_batch(
        self,
        anime_batch_size: int | None = None,
        characters_per_anime: int | None = None,
        include_retries: bool = False,
    ) -> BatchReport:
        return await self.scheduler.run_batch(
            anime_batch_size, characters_per_anime, include_retries
        )

    async def enrich_priority(
        self, limit: int = 5, characters_per_anime: int = 10
    ) -> BatchReport:
        return await self.scheduler.run_priority_batch(limit, characters_per_anime)

    # ==================== On demand ====================

    async def enrich_one_on_demand(
        self, anime_id: str, character_name: str, force_refresh: bool = False
    ) -> OnDemandResult:
        """Return an enriched character, enriching it now if needed.

        Lookup order: cache, stored success, then a fresh orchestration.
        """
        if not force_refresh:
            cached = await self._cached_character(anime_id, character_name)
            if cached is not None:
                return OnDemandResult(
                    from_cache=True,
                    enriched=True,
                    status="success",
                    character=cached,
                    message="Returned cached enrichment.",
                )

        anime = await self.repository.get(anime_id)
        if anime is None or not anime.characters:
            return OnDemandResult(status="error", message="Anime or characters not found")

        index = locate_character(anime.characters, character_name)
        if index is None:
            return OnDemandResult(status="not_found", message="Character not found in anime")
        target = anime.characters[index]

        if not force_refresh and target.enrichment.status == EnrichmentStatus.SUCCESS:
            await self.cache.set(
                self.orchestrator.cache_key(anime_id, target.name),
                target.model_dump(mode="json"),
                self.policy.cache_ttl_seconds,
            )
            return OnDemandResult(
                enriched=True,
                status="success",
                character=target,
                message="Character already enriched.",
            )

        outcome = await self.orchestrator.enrich_one(anime, target, force_refresh=force_refresh)

        if outcome.status == OutcomeStatus.SUCCESS:
            message = (
                "Returned cached enrichment."
                if outcome.from_cache
                else "Character enriched successfully."
            )
        elif outcome.status == OutcomeStatus.IN_PROGRESS:
            message = "Enrichment already in progress."
        elif outcome.status == OutcomeStatus.SKIPPED and outcome.error == "manually protected":
            message = "Character is manually protected."
        elif outcome.status == OutcomeStatus.SKIPPED:
            message = "Character name too short to enrich."
        elif outcome.status == OutcomeStatus.NOT_FOUND:
            message = "Character not found in anime"
        else:
            message = f"Enrichment failed: {outcome.error}"

        current = outcome.character or target
        return OnDemandResult(
            from_cache=outcome.from_cache,
            triggered=outcome.triggered,
            enriched=current.enrichment.status == EnrichmentStatus.SUCCESS,
            status=outcome.status.value,
            character=current,
            message=message,
        )

    async def _cached_character(self, anime_id: str, character_name: str) -> Character | None:
        cached = await self.cache.get(self.orchestrator.cache_key(anime_id, character_name))
        if cached is None:
            return None
        try:
            return Character.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cached character {character_name}: {e}")
            return None

    async def get_character(self, anime_id: str, character_name: str) -> Character:
        """Fetch one stored character.

        Raises:
            AnimeNotFoundError: If the anime does not exist.
            CharacterNotFoundError: If no character matches the name.
        """
        anime = await self.repository.get(anime_id)
        if anime is None:
            raise AnimeNotFoundError(anime_id)
        index = locate_character(anime.characters, character_name)
        if index is None:
            raise CharacterNotFoundError(anime_id, character_name)
        return anime.characters[index]

    # ==================== Admin ====================

    @staticmethod
    def _require_admin(principal: Principal, operation: str) -> None:
        if not principal.is_admin:
            logger.warning(f"Denied {operation} for principal {principal.user_id!r}")
            raise AdminAccessError(operation)

    async def reset_status(
        self,
        anime_id: str,
        character_names: list[str] | None = None,
        reset_to: ResetTarget = "pending",
        *,
        principal: Principal,
    ) -> ResetResult:
        """Reset enrichment tracking so that characters are picked up again.

        Attempts, last attempt time and last error are cleared; enriched
        content is kept. Cached results of the reset characters are dropped
        so the next run enriches them afresh.

        Raises:
            AdminAccessError: If ``principal`` is not an admin.
            AnimeNotFoundError: If the anime does not exist.
        """
        self._require_admin(principal, "reset_status")
        status = EnrichmentStatus(reset_to)

        def reset(c: Character) -> Character:
            c.enrichment.status = status
            c.enrichment.attempts = 0
            c.enrichment.last_attempt_at = None
            c.enrichment.last_error = None
            return c

        refs = [CharacterRef(name=n) for n in character_names] if character_names else None
        updated = await self.repository.update_characters(anime_id, refs, reset)

        for character in updated:
            await self.cache.invalidate(self.orchestrator.cache_key(anime_id, character.name))

        logger.info(
            f"Reset {len(updated)} characters of {anime_id} to {reset_to} "
            f"(by {principal.user_id or 'admin'})"
        )
        return ResetResult(characters_reset=len(updated), reset_to=reset_to)

    async def set_manual_protection(
        self,
        anime_id: str,
        character_name: str,
        protected: bool,
        *,
        principal: Principal,
    ) -> Character:
        """Flag or unflag a character as curated by hand.

        Raises:
            AdminAccessError: If ``principal`` is not an admin.
            AnimeNotFoundError: If the anime does not exist.
            CharacterNotFoundError: If no character matches the name.
        """
        self._require_admin(principal, "set_manual_protection")
        now = self._clock()

        def apply(c: Character) -> Character:
            c.manual_protection.protected = protected
            c.manual_protection.by = principal.user_id if protected else None
            c.manual_protection.at = now if protected else None
            return c

        return await self.repository.update_character(
            anime_id, CharacterRef(name=character_name), apply
        )

    async def get_enrichment_status(
        self, anime_id: str | None = None, sample_size: int = 50
    ) -> EnrichmentStatusReport:
        """Summarize enrichment progress.

        With ``anime_id`` the report covers that anime and lists every
        character; otherwise it covers the newest ``sample_size`` anime.
        """
        if anime_id is not None:
            anime = await self.repository.get(anime_id)
            if anime is None:
                raise AnimeNotFoundError(anime_id)
            sample = [anime]
        else:
            sample = (await self.repository.paginated_query(page_size=sample_size)).items

        report = EnrichmentStatusReport(total_anime=len(sample))
        totals: dict[str, int] = {}
        for anime in sample:
            report.total_characters += len(anime.characters)
            for status, count in count_by_status(anime.characters).items():
                totals[status] = totals.get(status, 0) + count
            if anime_id is not None:
                report.character_details.extend(
                    CharacterStatusDetail(
                        anime_title=anime.title,
                        character_name=c.name,
                        status=c.enrichment.status.value if c.enrichment.status else UNSET_STATUS,
                        attempts=c.enrichment.attempts,
                        last_error=c.enrichment.last_error,
                        last_attempt_at=c.enrichment.last_attempt_at,
                        protected=c.manual_protection.protected,
                    )
                    for c in anime.characters
                )
        report.status_counts = totals
        return report

    async def get_cache_statistics(self) -> CacheStatistics:
        return await self.cache.statistics()

    async def clear_expired_cache(self) -> int:
        return await self.cache.sweep_expired()

    async def invalidate_character_cache(self, anime_id: str, character_name: str) -> bool:
        return await self.cache.invalidate(self.orchestrator.cache_key(anime_id, character_name))

    def describe(self) -> dict[str, Any]:
        """Static configuration summary for health and status endpoints."""
        return {
            "backends": [b.tier.value for b in self.orchestrator.backends],
            "max_attempts": self.policy.max_attempts,
            "cooldown_hours": self.policy.cooldown_hours,
            "lock_ttl_seconds": self.policy.lock_ttl_seconds,
            "cache_enabled": self.cache.enabled,
        }
