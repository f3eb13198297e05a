"""Tests for the aiohttp enrichment backend client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from character_enrichment.backends.base import BackendTier, EnrichmentRequest
from character_enrichment.backends.http_client import AIEnrichmentClient
from character_enrichment.config import AIBackendConfig


def _response(status=200, json_data=None, text="", headers=None):
    response = AsyncMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    cm = AsyncMock()
    cm.__aenter__.return_value = response
    cm.__aexit__.return_value = False
    return cm


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.closed = False
    session.post.return_value = _response(
        json_data={"comprehensive_character": {"personality_analysis": "Brave"}}
    )
    return session


@pytest.fixture
def limiter():
    limiter = MagicMock()
    limiter.acquire = AsyncMock()
    return limiter


@pytest.fixture
def config():
    return AIBackendConfig(base_url="http://ai.test/api/v1/", max_retries=2)


@pytest.fixture
def request_():
    return EnrichmentRequest(
        character_name="Nami",
        anime_title="One Piece",
        known_fields={"role": "MAIN"},
        idempotency_token="tok-1",
    )


def _client(tier, config, session, limiter):
    return AIEnrichmentClient(tier, config=config, session=session, rate_limiter=limiter)


@pytest.mark.asyncio
async def test_comprehensive_success(config, mock_session, limiter, request_):
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert result.usable
    assert result.payload.personality_analysis == "Brave"
    limiter.acquire.assert_awaited_once()
    url = mock_session.post.call_args.args[0]
    body = mock_session.post.call_args.kwargs["json"]
    assert url == "http://ai.test/api/v1/characters/comprehensive"
    assert body == {
        "character_name": "Nami",
        "anime_title": "One Piece",
        "existing_data": {"role": "MAIN"},
        "message_id": "tok-1",
    }


@pytest.mark.asyncio
async def test_detailed_tier_body_and_result_key(config, mock_session, limiter, request_):
    mock_session.post.return_value = _response(
        json_data={"merged_character": {"trivia": ["Loves tangerines"]}}
    )
    client = _client(BackendTier.DETAILED, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert result.payload.trivia == ["Loves tangerines"]
    body = mock_session.post.call_args.kwargs["json"]
    assert body["enrichment_level"] == "detailed"
    assert body["include_advanced_analysis"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "json_data, error",
    [
        ({"error": "model unavailable"}, "model unavailable"),
        ({"comprehensive_character": {}}, "empty payload"),
        ({"something_else": {}}, "response carried no character"),
        (["not", "an", "object"], "malformed response"),
    ],
)
async def test_unusable_payloads(config, mock_session, limiter, request_, json_data, error):
    mock_session.post.return_value = _response(json_data=json_data)
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert not result.usable
    assert result.error == error


@pytest.mark.asyncio
async def test_invalid_payload_shape(config, mock_session, limiter, request_):
    mock_session.post.return_value = _response(
        json_data={"comprehensive_character": {"trivia": "not a list"}}
    )
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert result.error.startswith("invalid payload")


@pytest.mark.asyncio
async def test_http_error(config, mock_session, limiter, request_):
    mock_session.post.return_value = _response(status=500, text="internal error")
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert result.error == "HTTP 500: internal error"


@pytest.mark.asyncio
async def test_rate_limited_then_success(config, mock_session, limiter, request_):
    mock_session.post.side_effect = [
        _response(status=429, headers={"Retry-After": "5"}),
        _response(json_data={"comprehensive_character": {"symbolism": "Tangerines"}}),
    ]
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        result = await client.enrich(request_)

    assert result.usable
    mock_sleep.assert_awaited_once_with(5)
    assert limiter.acquire.await_count == 2


@pytest.mark.asyncio
async def test_rate_limited_gives_up(config, mock_session, limiter, request_):
    mock_session.post.side_effect = [_response(status=429), _response(status=429)]
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        result = await client.enrich(request_)

    assert result.error == "rate limited"
    mock_sleep.assert_awaited_once_with(30)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()]
)
async def test_transport_errors(config, mock_session, limiter, request_, exc):
    mock_session.post.side_effect = exc
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    result = await client.enrich(request_)

    assert result.error.startswith("request failed")


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open(config, mock_session, limiter):
    mock_session.close = AsyncMock()
    client = _client(BackendTier.COMPREHENSIVE, config, mock_session, limiter)

    async with client:
        pass

    mock_session.close.assert_not_awaited()
    assert client.session is None


@pytest.mark.asyncio
async def test_creates_session_lazily(config, limiter):
    client = _client(BackendTier.COMPREHENSIVE, config, None, limiter)

    with patch("aiohttp.ClientSession") as session_cls:
        session_cls.return_value.closed = False
        session = client._get_session()

    assert session is session_cls.return_value
    assert client._get_session() is session
