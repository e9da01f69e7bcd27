"""Version 1 API endpoints."""

from .endpoints import (
    cache_router,
    communities_router,
    search_router,
    sync_router,
    system_router,
    threads_router,
    users_router,
    webhooks_router,
)

__all__ = [
    "cache_router",
    "communities_router",
    "search_router",
    "sync_router",
    "system_router",
    "threads_router",
    "users_router",
    "webhooks_router",
]
