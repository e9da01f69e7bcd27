"""Process-local cache of rendered listing views.

Write paths call :meth:`ViewCache.invalidate_community` after every
successful mutation so the next read rebuilds the view from the database.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Final

from threadhub.core.settings import settings

logger = logging.getLogger(__name__)

COMMUNITIES_PATH: Final[str] = "/communities"


def community_path(community_id: str) -> str:
    return f"{COMMUNITIES_PATH}/{community_id}"


class ViewCache:
    """Thread-safe TTL cache keyed by view path."""

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = settings.view_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()

    def get(self, path: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[path]
                return None
            return value

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            self._entries[path] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, path: str) -> bool:
        """Drop ``path`` (and any entries keyed below it with a query string)."""
        with self._lock:
            keys = [key for key in self._entries if key == path or key.startswith(f"{path}?")]
            for key in keys:
                del self._entries[key]
        logger.debug("Invalidated view %s (%d entries)", path, len(keys))
        return bool(keys)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def invalidate_community(self, *community_ids: str | None) -> None:
        """Mark the listing view and each community's own view stale."""
        self.invalidate(COMMUNITIES_PATH)
        for community_id in community_ids:
            if community_id:
                self.invalidate(community_path(community_id))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class _ViewCacheSingleton:
    _instance: ViewCache | None = None

    @classmethod
    def get_instance(cls) -> ViewCache:
        if cls._instance is None:
            cls._instance = ViewCache()
        return cls._instance


def get_view_cache() -> ViewCache:
    """Return the shared view cache."""
    return _ViewCacheSingleton.get_instance()
