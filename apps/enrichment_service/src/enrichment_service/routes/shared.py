"""Shared helpers for enrichment_service route handlers."""

from __future__ import annotations

from character_enrichment import (
    AdminAccessError,
    AnimeNotFoundError,
    CharacterNotFoundError,
    ConcurrentModificationError,
    StoreUnavailableError,
)
from fastapi import HTTPException


def to_http_error(exc: Exception) -> HTTPException:
    """Map a pipeline exception to an HTTP error.

    Args:
        exc: Exception raised by the enrichment service.

    Returns:
        HTTPException with a status code matching the failure class.
    """
    if isinstance(exc, AnimeNotFoundError | CharacterNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AdminAccessError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ConcurrentModificationError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(status_code=503, detail="Document store unavailable")
    return HTTPException(status_code=500, detail=f"Internal error: {exc}")
