"""Global search endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Query

from threadhub.schemas.search import SearchResult
from threadhub.services.search import search_content

from ..dependencies import CurrentUserIdDep, SessionDep

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=list[SearchResult])
async def search(
    _user_id: CurrentUserIdDep,
    db: SessionDep,
    q: str = Query("", max_length=200),
) -> list[SearchResult]:
    return search_content(db, q)
