"""Public character endpoints: eligibility, lookup and on-demand enrichment."""

import logging

from character_enrichment import CharacterEnrichmentService, OnDemandResult
from common.models.anime import Character
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_enrichment_service
from .shared import to_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{anime_id}/characters/eligible", response_model=list[Character])
async def list_eligible_characters(
    anime_id: str,
    include_retries: bool = Query(default=False),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> list[Character]:
    """Return the characters of an anime that the next run would enrich."""
    try:
        return await service.select_eligible(anime_id, include_retries)
    except Exception as e:
        logger.exception(f"Failed to select eligible characters for {anime_id}")
        raise to_http_error(e) from e


@router.get("/{anime_id}/characters/{character_name}", response_model=Character)
async def get_character(
    anime_id: str,
    character_name: str,
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> Character:
    try:
        return await service.get_character(anime_id, character_name)
    except Exception as e:
        raise to_http_error(e) from e


@router.post("/{anime_id}/characters/{character_name}/enrich", response_model=OnDemandResult)
async def enrich_character(
    anime_id: str,
    character_name: str,
    force_refresh: bool = Query(default=False),
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> OnDemandResult:
    """Return the enriched character, enriching it now when necessary.

    Outcomes are reported in the body's ``status``; an unknown anime or
    character is not an HTTP error here.

    Raises:
        HTTPException: 503 if the document store is unreachable.
    """
    try:
        return await service.enrich_one_on_demand(anime_id, character_name, force_refresh)
    except Exception as e:
        logger.exception(f"On-demand enrichment failed for {anime_id}/{character_name}")
        raise to_http_error(e) from e
