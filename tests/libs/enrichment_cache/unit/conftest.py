"""Shared test fixtures for enrichment_cache unit tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from enrichment_cache.store import InMemoryKeyValueStore


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """
    Create a mock async Redis client preconfigured for tests.

    Returns:
        AsyncMock: A mock client whose ``get`` misses, ``set`` succeeds,
        ``delete``/``eval`` report one removed key and ``scan_iter`` yields
        nothing.
    """
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=None)
    mock_client.set = AsyncMock(return_value=True)
    mock_client.delete = AsyncMock(return_value=1)
    mock_client.eval = AsyncMock(return_value=1)
    mock_client.aclose = AsyncMock()

    async def _empty_scan(*args, **kwargs):
        for key in []:
            yield key

    mock_client.scan_iter = MagicMock(side_effect=_empty_scan)
    return mock_client
