"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from threadhub.schemas.common import OperationResult
from threadhub.schemas.community import UserProfile
from threadhub.schemas.thread import ThreadResponse
from threadhub.schemas.user import UserPage, UserSummary, UserUpdate
from threadhub.services import thread_service, user_service

from ..dependencies import (
    CurrentUserDep,
    CurrentUserIdDep,
    PageDep,
    SessionDep,
    raise_for_result,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: CurrentUserDep) -> UserProfile:
    return UserProfile.from_user(current_user)


@router.put("/me", response_model=OperationResult)
async def update_me(
    update: UserUpdate,
    user_id: CurrentUserIdDep,
    db: SessionDep,
) -> OperationResult:
    """Create or update the caller's profile; completes onboarding."""
    return raise_for_result(user_service.upsert_user(db, user_id, update))


@router.get("/me/activity", response_model=list[ThreadResponse])
async def my_activity(current_user: CurrentUserDep, db: SessionDep) -> list[ThreadResponse]:
    """Replies other users left on the caller's threads."""
    replies = thread_service.get_activity(db, current_user.id)
    return [ThreadResponse.from_thread(reply, depth=0) for reply in replies]


@router.get("", response_model=UserPage)
async def list_users(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    page: PageDep,
    search: str = Query("", max_length=200),
    descending: bool = True,
) -> UserPage:
    return user_service.fetch_users(db, user_id, search, page, descending)


@router.get("/suggested", response_model=list[UserSummary])
async def suggested_users(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    limit: int = Query(5, ge=1, le=20),
) -> list[UserSummary]:
    users = user_service.get_suggested_users(db, user_id, limit)
    return [UserSummary.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: str,
    _caller: CurrentUserIdDep,
    db: SessionDep,
) -> UserProfile:
    user = user_service.fetch_user(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return UserProfile.from_user(user)


@router.get("/{user_id}/threads", response_model=list[ThreadResponse])
async def get_user_threads(
    user_id: str,
    _caller: CurrentUserIdDep,
    db: SessionDep,
) -> list[ThreadResponse]:
    threads = thread_service.fetch_user_threads(db, user_id)
    if threads is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return [ThreadResponse.from_thread(t) for t in threads]
