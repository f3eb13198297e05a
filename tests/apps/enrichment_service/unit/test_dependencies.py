"""Tests for request dependencies: service lookup and admin gating."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from enrichment_service.dependencies import (
    get_enrichment_service,
    get_principal,
    require_admin,
)
from fastapi import HTTPException


def _settings(token):
    settings = MagicMock()
    settings.admin_api_token = token
    return settings


@pytest.mark.asyncio
async def test_get_enrichment_service_from_app_state():
    service = object()
    request = SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(runtime=SimpleNamespace(service=service)))
    )

    assert await get_enrichment_service(request) is service


@pytest.mark.asyncio
async def test_get_enrichment_service_without_runtime():
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    with pytest.raises(RuntimeError):
        await get_enrichment_service(request)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "configured, provided, is_admin",
    [
        ("s3cret", "s3cret", True),
        ("s3cret", "wrong", False),
        ("s3cret", None, False),
        (None, "anything", False),
        (None, None, False),
    ],
)
async def test_get_principal(configured, provided, is_admin):
    with patch(
        "enrichment_service.dependencies.get_settings", return_value=_settings(configured)
    ):
        principal = await get_principal(provided)

    assert principal.is_admin is is_admin


@pytest.mark.asyncio
async def test_require_admin_rejects_anonymous():
    with patch(
        "enrichment_service.dependencies.get_settings", return_value=_settings("s3cret")
    ):
        with pytest.raises(HTTPException) as exc_info:
            await require_admin("nope")

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_require_admin_accepts_token():
    with patch(
        "enrichment_service.dependencies.get_settings", return_value=_settings("s3cret")
    ):
        principal = await require_admin("s3cret")

    assert principal.is_admin
