"""Thread feed, replies and reactions."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from threadhub.schemas.common import OperationResult
from threadhub.schemas.thread import (
    CommentCreate,
    ReactionResponse,
    ThreadCreate,
    ThreadPage,
    ThreadResponse,
)
from threadhub.services import thread_service
from threadhub.services.identifiers import CommunityRef

from ..dependencies import CurrentUserIdDep, PageDep, SessionDep, raise_for_result

router = APIRouter(prefix="/threads", tags=["threads"])


@router.get("", response_model=ThreadPage)
async def list_threads(_user_id: CurrentUserIdDep, db: SessionDep, page: PageDep) -> ThreadPage:
    """Root threads, newest first."""
    return thread_service.fetch_posts(db, page)


@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED)
async def create_thread(
    thread_data: ThreadCreate,
    user_id: CurrentUserIdDep,
    db: SessionDep,
) -> OperationResult:
    ref = None
    if thread_data.community_id:
        try:
            ref = CommunityRef.parse(thread_data.community_id)
        except ValueError as err:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    result = thread_service.create_thread(
        db, thread_data.text, user_id, community_ref=ref, image=thread_data.image
    )
    return raise_for_result(result)


@router.get("/{thread_pk}", response_model=ThreadResponse)
async def get_thread(thread_pk: int, _user_id: CurrentUserIdDep, db: SessionDep) -> ThreadResponse:
    """A thread with two levels of replies."""
    thread = thread_service.fetch_thread(db, thread_pk)
    if thread is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Thread not found",
        )
    return thread


@router.post(
    "/{thread_pk}/comments",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    thread_pk: int,
    comment: CommentCreate,
    user_id: CurrentUserIdDep,
    db: SessionDep,
) -> OperationResult:
    return raise_for_result(thread_service.add_comment(db, thread_pk, comment.text, user_id))


@router.post("/{thread_pk}/like", response_model=ReactionResponse)
async def like(thread_pk: int, user_id: CurrentUserIdDep, db: SessionDep) -> ReactionResponse:
    return raise_for_result(thread_service.toggle_like(db, thread_pk, user_id)).data


@router.post("/{thread_pk}/repost", response_model=ReactionResponse)
async def repost(thread_pk: int, user_id: CurrentUserIdDep, db: SessionDep) -> ReactionResponse:
    return raise_for_result(thread_service.toggle_repost(db, thread_pk, user_id)).data
