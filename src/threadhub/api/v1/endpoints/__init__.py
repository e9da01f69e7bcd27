# src/threadhub/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .cache import router as cache_router
from .communities import router as communities_router
from .search import router as search_router
from .sync import router as sync_router
from .system import router as system_router
from .threads import router as threads_router
from .users import router as users_router
from .webhooks import router as webhooks_router

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
