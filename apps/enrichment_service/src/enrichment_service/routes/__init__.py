"""HTTP routers of enrichment_service."""

from . import admin, characters, health

__all__ = ["admin", "characters", "health"]
