# src/threadhub/main.py
"""Main entry point for the Threadhub application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from threadhub.api.v1 import (
    cache_router,
    communities_router,
    search_router,
    sync_router,
    system_router,
    threads_router,
    users_router,
    webhooks_router,
)
from threadhub.core.settings import settings
from threadhub.db.session import Database
from threadhub.services.identity import get_identity_provider

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Initialize FastAPI app
app = FastAPI(
    title="Threadhub API",
    description="Communities and threads synchronized with Clerk organizations",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(sync_router, prefix="/api/v1")
app.include_router(communities_router, prefix="/api/v1")
app.include_router(threads_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(search_router, prefix="/api/v1")
app.include_router(cache_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    if getattr(app.state, "database", None) is None:
        database = Database.from_settings()
        database.connect()
        app.state.database = database
    if not settings.clerk_enabled:
        logger.warning("CLERK_SECRET_KEY is not set; organization sync is disabled")
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    database: Database | None = getattr(app.state, "database", None)
    if database is not None:
        database.dispose()
        app.state.database = None
    await get_identity_provider().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Threadhub API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("threadhub.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
