"""System endpoints for the Threadhub API."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from threadhub.core.settings import settings
from threadhub.db.session import Database

router = APIRouter(tags=["system"])


@router.get("/health")
async def get_system_health(request: Request) -> dict[str, object]:
    """Liveness check including database connectivity.

    Returns:
        Dictionary with overall status, component health and version info
    """
    database: Database | None = getattr(request.app.state, "database", None)
    db_healthy = database is not None and database.ping()

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "timestamp": int(time.time()),
        "components": {
            "database": "healthy" if db_healthy else "unhealthy",
            "identity_provider": "configured" if settings.clerk_enabled else "disabled",
        },
        "version": settings.app_version,
    }
