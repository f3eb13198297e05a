"""Admin API endpoints for enrichment runs, status resets and cache upkeep.

Every endpoint requires a valid ``X-Admin-Token`` header.
"""

import logging
from typing import Any, Literal

from character_enrichment import (
    BatchReport,
    CharacterEnrichmentService,
    EnrichmentStatusReport,
    Principal,
    ResetResult,
)
from common.models.anime import Character
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..dependencies import get_enrichment_service, require_admin
from .shared import to_http_error

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


class EnrichAnimeRequest(BaseModel):
    """Request model for enriching one anime."""

    max_characters: int | None = Field(default=10, ge=1, le=100)
    include_retries: bool = Field(default=True, description="Retry failed characters")
    reset_first: bool = Field(
        default=False, description="Reset all characters to pending before enriching"
    )


class BatchRequest(BaseModel):
    """Request model for a batch run."""

    anime_batch_size: int | None = Field(default=None, ge=1, le=100)
    characters_per_anime: int | None = Field(default=None, ge=1, le=100)
    include_retries: bool = False
    priority: bool = Field(
        default=False, description="Walk newest anime with never-enriched characters"
    )


class ResetRequest(BaseModel):
    """Request model for resetting enrichment status."""

    character_names: list[str] | None = Field(
        default=None, description="Characters to reset; all when omitted"
    )
    reset_to: Literal["pending", "failed"] = "pending"


class ProtectionRequest(BaseModel):
    protected: bool


class CacheStatsResponse(BaseModel):
    """Response model for cache statistics."""

    total_entries: int = Field(..., description="Stored entries, expired included")
    valid_entries: int = Field(..., description="Entries still within their TTL")
    expired_entries: int = Field(..., description="Entries past their TTL")
    last_updated: str = Field(..., description="Snapshot time (ISO 8601)")


@router.post("/anime/{anime_id}/enrich", response_model=BatchReport)
async def enrich_anime(
    anime_id: str,
    request: EnrichAnimeRequest,
    principal: Principal = Depends(require_admin),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> BatchReport:
    """Enrich one anime now, optionally resetting its characters first."""
    try:
        if request.reset_first:
            await service.reset_status(anime_id, principal=principal)
        return await service.enrich_anime(
            anime_id, request.max_characters, request.include_retries
        )
    except Exception as e:
        logger.exception(f"Admin enrichment failed for {anime_id}")
        raise to_http_error(e) from e


@router.post("/batch", response_model=BatchReport)
async def run_batch(
    request: BatchRequest,
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> BatchReport:
    """Run one enrichment batch synchronously and return its report."""
    try:
        if request.priority:
            return await service.enrich_priority(
                limit=request.anime_batch_size or 5,
                characters_per_anime=request.characters_per_anime or 10,
            )
        return await service.enrich_batch(
            request.anime_batch_size, request.characters_per_anime, request.include_retries
        )
    except Exception as e:
        logger.exception("Admin batch run failed")
        raise to_http_error(e) from e


@router.post("/anime/{anime_id}/reset", response_model=ResetResult)
async def reset_status(
    anime_id: str,
    request: ResetRequest,
    principal: Principal = Depends(require_admin),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> ResetResult:
    """Reset enrichment tracking of an anime's characters (content is kept)."""
    try:
        return await service.reset_status(
            anime_id, request.character_names, request.reset_to, principal=principal
        )
    except Exception as e:
        raise to_http_error(e) from e


@router.post(
    "/anime/{anime_id}/characters/{character_name}/protection", response_model=Character
)
async def set_protection(
    anime_id: str,
    character_name: str,
    request: ProtectionRequest,
    principal: Principal = Depends(require_admin),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> Character:
    try:
        return await service.set_manual_protection(
            anime_id, character_name, request.protected, principal=principal
        )
    except Exception as e:
        raise to_http_error(e) from e


@router.get("/status", response_model=EnrichmentStatusReport)
async def enrichment_status(
    anime_id: str | None = Query(default=None),
    sample_size: int = Query(default=50, ge=1, le=500),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> EnrichmentStatusReport:
    """Per-status counters for one anime or a sample of the newest anime."""
    try:
        return await service.get_enrichment_status(anime_id, sample_size)
    except Exception as e:
        raise to_http_error(e) from e


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> CacheStatsResponse:
    try:
        stats = await service.get_cache_statistics()
    except Exception as e:
        logger.exception("Failed to get cache statistics")
        raise to_http_error(e) from e
    return CacheStatsResponse(
        total_entries=stats.total_entries,
        valid_entries=stats.valid_entries,
        expired_entries=stats.expired_entries,
        last_updated=stats.last_updated.isoformat(),
    )


@router.post("/cache/sweep")
async def sweep_cache(
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> dict[str, Any]:
    try:
        removed = await service.clear_expired_cache()
    except Exception as e:
        raise to_http_error(e) from e
    return {"removed": removed}


@router.delete("/anime/{anime_id}/characters/{character_name}/cache")
async def invalidate_cache(
    anime_id: str,
    character_name: str,
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> dict[str, Any]:
    removed = await service.invalidate_character_cache(anime_id, character_name)
    return {"invalidated": removed}
