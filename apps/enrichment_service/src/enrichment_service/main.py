"""Character Enrichment Service - FastAPI application for AI character enrichment.

This service exposes on-demand enrichment of single characters, batch runs
for the scheduler and admin operations (status resets, manual protection and
cache upkeep) over the character enrichment pipeline.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from common.config import get_settings
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import admin, characters, health
from .runtime import build_runtime, close_runtime

# Get application settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.service.log_level),
    format=settings.service.log_format,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Builds the enrichment runtime (stores, backends and service) and stores
    it on ``app.state`` for dependency injection. Backend sessions and the
    Redis client are closed on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        Control back to the framework after successful initialization.
    """
    logger.info("Initializing character enrichment runtime...")
    runtime = await build_runtime(settings)
    app.state.runtime = runtime
    try:
        logger.info("Character enrichment service initialized successfully")
        yield
    finally:
        logger.info("Shutting down character enrichment service...")
        try:
            await close_runtime(runtime)
        except Exception:
            logger.exception("Error closing enrichment runtime")
        app.state.runtime = None


# Create FastAPI app
app = FastAPI(
    title=settings.service.api_title,
    description=settings.service.api_description,
    version=settings.service.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # ty: ignore[invalid-argument-type]
    allow_origins=settings.service.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.service.allowed_methods,
    allow_headers=settings.service.allowed_headers,
)

# Include API routers
app.include_router(health.router, tags=["health"])
app.include_router(characters.router, prefix="/api/v1/anime", tags=["characters"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])


@app.get("/")
async def root() -> dict[str, Any]:
    """Return service metadata and a directory of available endpoints."""
    return {
        "service": "Character Enrichment Service",
        "version": settings.service.api_version,
        "description": "AI enrichment of characters embedded in anime documents",
        "endpoints": {
            "health": "/health",
            "on_demand": "/api/v1/anime/{anime_id}/characters/{name}/enrich",
            "batch": "/api/v1/admin/batch",
            "status": "/api/v1/admin/status",
            "docs": "/docs",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "enrichment_service.main:app",
        host=settings.service.enrichment_service_host,
        port=settings.service.enrichment_service_port,
        reload=settings.debug,
        log_level=settings.service.log_level.lower(),
    )
