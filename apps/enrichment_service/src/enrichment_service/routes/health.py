"""Health endpoint for enrichment_service."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from character_enrichment import CharacterEnrichmentService
from common.config import get_settings
from fastapi import APIRouter, Depends

from ..dependencies import get_enrichment_service

router = APIRouter()


@router.get("/health")
async def health(
    service: CharacterEnrichmentService = Depends(get_enrichment_service),
) -> dict[str, Any]:
    """Return service health status with pipeline configuration.

    Args:
        service: Injected enrichment service.

    Returns:
        Health status dict including service metadata and pipeline settings.
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "character-enrichment-service",
        "version": settings.service.api_version,
        "environment": settings.environment.value,
        "pipeline": service.describe(),
    }
