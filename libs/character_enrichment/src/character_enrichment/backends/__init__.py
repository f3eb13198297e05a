"""AI enrichment backends."""

from .base import BackendResult, BackendTier, EnrichmentBackend, EnrichmentRequest
from .http_client import AIEnrichmentClient
from .rate_limiter import AsyncRateLimiter, get_shared_rate_limiter

__all__ = [
    "AIEnrichmentClient",
    "AsyncRateLimiter",
    "BackendResult",
    "BackendTier",
    "EnrichmentBackend",
    "EnrichmentRequest",
    "get_shared_rate_limiter",
]
