import hmac
import logging

from character_enrichment import CharacterEnrichmentService, Principal
from common.config import get_settings
from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)


async def get_enrichment_service(request: Request) -> CharacterEnrichmentService:
    """
    Dependency that provides the CharacterEnrichmentService instance.

    The service is built in the FastAPI lifespan event and stored in the
    app's state. No cleanup is needed here since its resources are managed
    by the lifespan context manager.

    Args:
        request: FastAPI request object containing app state

    Returns:
        Initialized CharacterEnrichmentService instance

    Raises:
        RuntimeError: If the service is not available in app state
    """
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        logger.error("Enrichment runtime not initialized in app state.")
        raise RuntimeError("CharacterEnrichmentService not available.")
    return runtime.service


async def get_principal(
    x_admin_token: str | None = Header(default=None),
) -> Principal:
    """Resolve the caller from the X-Admin-Token header.

    A matching token yields an admin principal; anything else is anonymous.
    """
    expected = get_settings().admin_api_token
    if expected and x_admin_token and hmac.compare_digest(x_admin_token, expected):
        return Principal(user_id="admin-token", is_admin=True)
    return Principal.anonymous()


async def require_admin(
    x_admin_token: str | None = Header(default=None),
) -> Principal:
    """Reject non-admin callers with 403."""
    principal = await get_principal(x_admin_token)
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal
