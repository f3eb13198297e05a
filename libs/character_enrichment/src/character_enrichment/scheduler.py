"""
Batch scheduling of character enrichment.

A batch walks a page of candidate anime, keeps those that still have
eligible characters and enriches them one anime at a time. Failures are
contained per character by the orchestrator and per anime here; only an
unreachable document store aborts the batch.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from common.models.anime import Anime
from common.utils.datetime_utils import utc_now

from .config import EnrichmentPolicy
from .exceptions import AnimeNotFoundError, StoreUnavailableError
from .locator import select_eligible
from .orchestrator import EnrichmentOrchestrator, EnrichmentOutcome, OutcomeStatus
from .repository import AnimeRepository

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Aggregate counters of a batch or single-anime run.

    ``processed`` counts every orchestration; ``in_progress`` and
    ``not_found`` outcomes appear only there and in their own counters.
    """

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    in_progress: int = 0
    not_found: int = 0
    anime_processed: int = 0
    errors: list[str] = field(default_factory=list)

    def record(self, outcome: EnrichmentOutcome) -> None:
        self.processed += 1
        if outcome.status == OutcomeStatus.SUCCESS:
            self.succeeded += 1
        elif outcome.status == OutcomeStatus.FAILED:
            self.failed += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status == OutcomeStatus.IN_PROGRESS:
            self.in_progress += 1
        elif outcome.status == OutcomeStatus.NOT_FOUND:
            self.not_found += 1

    def merge(self, other: "BatchReport") -> None:
        self.processed += other.processed
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.skipped += other.skipped
        self.in_progress += other.in_progress
        self.not_found += other.not_found
        self.anime_processed += other.anime_processed
        self.errors.extend(other.errors)


class BatchScheduler:
    """Select and enrich characters across many anime."""

    def __init__(
        self,
        repository: AnimeRepository,
        orchestrator: EnrichmentOrchestrator,
        policy: EnrichmentPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.orchestrator = orchestrator
        self.policy = policy
        self._clock = clock

    async def enrich_anime(
        self,
        anime_id: str,
        max_characters: int | None = None,
        include_retries: bool = False,
    ) -> BatchReport:
        """Enrich up to ``max_characters`` eligible characters of one anime.

        Raises:
            AnimeNotFoundError: If the anime does not exist.
        """
        anime = await self.repository.get(anime_id)
        if anime is None:
            raise AnimeNotFoundError(anime_id)
        return await self._enrich_loaded(anime, max_characters, include_retries)

    async def _enrich_loaded(
        self, anime: Anime, max_characters: int | None, include_retries: bool
    ) -> BatchReport:
        limit = (
            self.policy.default_characters_per_anime if max_characters is None else max_characters
        )
        eligible = select_eligible(
            anime.characters, include_retries, self.policy, self._clock()
        )[:limit]

        report = BatchReport(anime_processed=1)
        if not eligible:
            logger.info(f"No eligible characters in '{anime.title}' ({anime.id})")
            return report

        logger.info(f"Enriching {len(eligible)} characters of '{anime.title}' ({anime.id})")

        semaphore = asyncio.Semaphore(self.policy.max_concurrent_characters)
        last_index = len(eligible) - 1
        delay = self.policy.inter_item_delay_seconds

        async def enrich_with_limit(index, character):
            async with semaphore:
                outcome = await self.orchestrator.enrich_one(anime, character)
                if index < last_index and delay > 0:
                    await asyncio.sleep(delay)
                return outcome

        tasks = [enrich_with_limit(i, c) for i, c in enumerate(eligible)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        store_error: StoreUnavailableError | None = None
        for character, result in zip(eligible, results):
            if isinstance(result, StoreUnavailableError):
                store_error = store_error or result
            elif isinstance(result, Exception):
                logger.error(f"Failed to enrich '{character.name}': {result}")
                report.processed += 1
                report.failed += 1
                report.errors.append(f"{anime.id}/{character.name}: {result}")
            else:
                report.record(result)

        if store_error is not None:
            raise store_error

        logger.info(
            f"Anime {anime.id} complete: {report.succeeded} succeeded, "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report

    async def run_batch(
        self,
        anime_batch_size: int | None = None,
        characters_per_anime: int | None = None,
        include_retries: bool = False,
    ) -> BatchReport:
        """Enrich the first ``anime_batch_size`` candidate anime needing work.

        This is the entry point for scheduled and admin-triggered runs.
        """
        batch_size = (
            self.policy.default_anime_batch_size if anime_batch_size is None else anime_batch_size
        )
        per_anime = (
            self.policy.default_characters_per_anime
            if characters_per_anime is None
            else characters_per_anime
        )
        if batch_size <= 0:
            return BatchReport()
        page_size = batch_size * self.policy.candidate_page_multiplier

        page = await self.repository.paginated_query(page_size=page_size, descending=True)
        now = self._clock()

        selected: list[Anime] = []
        for anime in page.items:
            if select_eligible(anime.characters, include_retries, self.policy, now):
                selected.append(anime)
                if len(selected) >= batch_size:
                    break

        logger.info(
            f"Starting batch: {len(selected)} of {len(page.items)} candidate anime "
            f"need enrichment (retries={'on' if include_retries else 'off'})"
        )
        report = await self._run_sequential(selected, per_anime, include_retries)
        logger.info(
            f"Batch complete: {report.anime_processed} anime, {report.processed} characters, "
            f"{report.succeeded} succeeded, {report.failed} failed"
        )
        return report

    async def run_priority_batch(
        self, limit: int = 5, characters_per_anime: int = 10, max_pages: int = 10
    ) -> BatchReport:
        """Enrich the newest anime whose characters were never enriched.

        Walks newest-first pages until ``limit`` anime with unset or pending
        characters are found or ``max_pages`` pages were read.
        """
        selected: list[Anime] = []
        cursor: str | None = None
        for _ in range(max_pages):
            page = await self.repository.paginated_query(
                cursor=cursor, page_size=max(limit * 2, 10), descending=True
            )
            for anime in page.items:
                if select_eligible(anime.characters, False, self.policy, self._clock()):
                    selected.append(anime)
                    if len(selected) >= limit:
                        break
            if len(selected) >= limit or page.is_done:
                break
            cursor = page.next_cursor

        logger.info(f"Starting priority batch for {len(selected)} anime")
        return await self._run_sequential(selected, characters_per_anime, False)

    async def _run_sequential(
        self, selected: list[Anime], per_anime: int, include_retries: bool
    ) -> BatchReport:
        report = BatchReport()
        for position, anime in enumerate(selected):
            if position > 0 and self.policy.inter_anime_delay_seconds > 0:
                await asyncio.sleep(self.policy.inter_anime_delay_seconds)
            try:
                # reload: the candidate page may be stale by now
                fresh = await self.repository.get(anime.id)
                if fresh is None:
                    raise AnimeNotFoundError(anime.id)
                report.merge(await self._enrich_loaded(fresh, per_anime, include_retries))
            except StoreUnavailableError:
                raise
            except Exception as e:
                logger.exception(f"Error enriching anime {anime.id}")
                report.errors.append(f"{anime.id}: {e}")
        return report
