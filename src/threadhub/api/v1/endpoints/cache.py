"""View cache invalidation endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from threadhub.services.cache import COMMUNITIES_PATH

from ..dependencies import CacheDep, CurrentUserIdDep

router = APIRouter(prefix="/refresh-cache", tags=["cache"])


class RefreshRequest(BaseModel):
    path: str = Field(COMMUNITIES_PATH, min_length=1, max_length=512)


class RefreshResponse(BaseModel):
    success: bool
    path: str
    invalidated: bool


@router.post("", response_model=RefreshResponse)
async def refresh_cache(
    _user_id: CurrentUserIdDep,
    cache: CacheDep,
    request: RefreshRequest | None = None,
) -> RefreshResponse:
    """Force the next read of ``path`` to be rebuilt from the database."""
    path = request.path if request is not None else COMMUNITIES_PATH
    invalidated = cache.invalidate(path)
    return RefreshResponse(success=True, path=path, invalidated=invalidated)
