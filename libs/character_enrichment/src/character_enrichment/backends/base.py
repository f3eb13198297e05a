"""Contract between the orchestrator and the tiered AI enrichment backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from common.models.anime import EnrichedContent
from pydantic import BaseModel, Field


class BackendTier(str, Enum):
    """Enrichment tiers, richest first."""

    COMPREHENSIVE = "comprehensive"
    DETAILED = "detailed"


class EnrichmentRequest(BaseModel):
    """Inputs sent to a backend for one character."""

    character_name: str
    anime_title: str
    known_fields: dict[str, Any] = Field(default_factory=dict)
    idempotency_token: str


@dataclass
class BackendResult:
    """Either an enrichment payload or an error message."""

    payload: EnrichedContent | None = None
    error: str | None = None

    @classmethod
    def ok(cls, payload: EnrichedContent) -> "BackendResult":
        return cls(payload=payload)

    @classmethod
    def fail(cls, error: str) -> "BackendResult":
        return cls(error=error)

    @property
    def usable(self) -> bool:
        """True when there is no error and the payload carries content."""
        return self.error is None and self.payload is not None and self.payload.has_content()


class EnrichmentBackend(ABC):
    """One tier of the external text-generation service."""

    tier: BackendTier

    @abstractmethod
    async def enrich(self, request: EnrichmentRequest) -> BackendResult:
        """Generate enrichment content for one character.

        Expected failures (HTTP errors, timeouts, unusable payloads) are
        reported through ``BackendResult.error`` rather than raised.
        """
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None
