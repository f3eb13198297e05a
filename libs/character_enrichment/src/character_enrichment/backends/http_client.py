"""
HTTP client for the external AI enrichment service.

Each tier is served by ``POST {base_url}/characters/{tier}``. The service
answers with the generated character under a tier-specific key, or with an
``error`` field. Rate limiting (HTTP 429) is retried a bounded number of
times, honouring ``Retry-After``.
"""

import asyncio
import json
import logging
from types import TracebackType
from typing import Any

import aiohttp
from common.models.anime import EnrichedContent
from pydantic import ValidationError

from ..config import AIBackendConfig, get_ai_backend_config
from .base import BackendResult, BackendTier, EnrichmentBackend, EnrichmentRequest
from .rate_limiter import AsyncRateLimiter, get_shared_rate_limiter

logger = logging.getLogger(__name__)

# Response key carrying the generated character, per tier
RESULT_KEYS: dict[BackendTier, str] = {
    BackendTier.COMPREHENSIVE: "comprehensive_character",
    BackendTier.DETAILED: "merged_character",
}

DEFAULT_RETRY_AFTER_SECONDS = 30


class AIEnrichmentClient(EnrichmentBackend):
    """aiohttp client for one enrichment tier."""

    def __init__(
        self,
        tier: BackendTier,
        config: AIBackendConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        rate_limiter: AsyncRateLimiter | None = None,
    ) -> None:
        self.tier = tier
        self.config = config or get_ai_backend_config()
        self.session = session
        self._owns_session = session is None
        self.rate_limiter = rate_limiter or get_shared_rate_limiter()

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/characters/{self.tier.value}"

    def _build_body(self, request: EnrichmentRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "character_name": request.character_name,
            "anime_title": request.anime_title,
            "existing_data": request.known_fields,
            "message_id": request.idempotency_token,
        }
        if self.tier == BackendTier.DETAILED:
            body["enrichment_level"] = "detailed"
            body["include_advanced_analysis"] = True
        return body

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            headers = {"Content-Type": "application/json", "Accept": "application/json"}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
                headers=headers,
            )
            self._owns_session = True
        return self.session

    async def enrich(self, request: EnrichmentRequest) -> BackendResult:
        session = self._get_session()
        body = self._build_body(request)
        max_retries = self.config.max_retries

        for attempt in range(max_retries):
            await self.rate_limiter.acquire()
            try:
                async with session.post(self.endpoint, json=body) as response:
                    if response.status == 429:
                        if attempt < max_retries - 1:
                            retry_after = int(
                                response.headers.get("Retry-After", DEFAULT_RETRY_AFTER_SECONDS)
                            )
                            logger.warning(
                                f"{self.tier.value} backend rate limited "
                                f"(attempt {attempt + 1}/{max_retries}). "
                                f"Waiting {retry_after} seconds..."
                            )
                            await asyncio.sleep(retry_after)
                            continue
                        logger.error(
                            f"{self.tier.value} backend rate limited after {max_retries} attempts"
                        )
                        return BackendResult.fail("rate limited")

                    if response.status >= 400:
                        text = await response.text()
                        return BackendResult.fail(f"HTTP {response.status}: {text[:200]}")

                    data = await response.json()
            except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
                logger.warning(
                    f"{self.tier.value} backend request failed for "
                    f"{request.character_name}: {e!r}"
                )
                return BackendResult.fail(f"request failed: {e!r}")

            return self._parse(data)

        return BackendResult.fail("rate limited")

    def _parse(self, data: Any) -> BackendResult:
        if not isinstance(data, dict):
            return BackendResult.fail("malformed response")
        if data.get("error"):
            return BackendResult.fail(str(data["error"]))

        generated = data.get(RESULT_KEYS[self.tier])
        if not isinstance(generated, dict):
            return BackendResult.fail("response carried no character")

        try:
            payload = EnrichedContent.model_validate(generated)
        except ValidationError as e:
            return BackendResult.fail(f"invalid payload: {e.error_count()} validation errors")

        if not payload.has_content():
            return BackendResult.fail("empty payload")
        return BackendResult.ok(payload)

    async def close(self) -> None:
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> "AIEnrichmentClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
