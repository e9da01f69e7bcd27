"""Community-related endpoints for the Threadhub API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from threadhub.schemas.common import OperationResult
from threadhub.schemas.community import (
    CommunityCreate,
    CommunityDetail,
    CommunityPage,
    CommunityResponse,
)
from threadhub.schemas.thread import ThreadResponse
from threadhub.services import community_service
from threadhub.services.cache import COMMUNITIES_PATH, community_path
from threadhub.services.membership import join_community, leave_community

from ..dependencies import (
    CacheDep,
    CommunityRefDep,
    CurrentUserIdDep,
    PageDep,
    ProviderDep,
    RetryPolicyDep,
    SessionDep,
    raise_for_result,
)

router = APIRouter(prefix="/communities", tags=["communities"])


@router.get("", response_model=CommunityPage)
async def list_communities(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    cache: CacheDep,
    page: PageDep,
    search: str = Query("", max_length=200),
) -> CommunityPage:
    """List communities, newest first, with the caller's membership flag."""
    key = (
        f"{COMMUNITIES_PATH}?search={search}&page={page.page}"
        f"&size={page.page_size}&user={user_id}"
    )
    cached = cache.get(key)
    if cached is not None:
        return cached
    result = community_service.fetch_communities(db, search, page, user_id)
    cache.set(key, result)
    return result


@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    user_id: CurrentUserIdDep,
    db: SessionDep,
    provider: ProviderDep,
    cache: CacheDep,
    retry_policy: RetryPolicyDep,
) -> OperationResult:
    """Create a community and, when possible, its Clerk organization."""
    result = await community_service.create_community(
        db, community_data, user_id, provider, cache, retry_policy
    )
    return raise_for_result(result)


@router.get("/mine", response_model=list[CommunityResponse])
async def my_communities(user_id: CurrentUserIdDep, db: SessionDep) -> list[CommunityResponse]:
    communities = community_service.get_user_communities(db, user_id)
    return [CommunityResponse.from_community(c, is_member=True) for c in communities]


@router.get("/suggested", response_model=list[CommunityResponse])
async def suggested_communities(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    limit: int = Query(3, ge=1, le=20),
) -> list[CommunityResponse]:
    communities = community_service.fetch_suggested_communities(db, user_id, limit)
    return [CommunityResponse.from_community(c, is_member=False) for c in communities]


@router.get("/{community_ref}", response_model=CommunityDetail)
async def get_community(
    ref: CommunityRefDep,
    user_id: CurrentUserIdDep,
    db: SessionDep,
    cache: CacheDep,
) -> CommunityDetail:
    """Get a community with its members."""
    path = community_path(ref.value)
    detail: CommunityDetail | None = cache.get(path)
    if detail is None:
        community = community_service.fetch_community_details(db, ref)
        if community is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Community not found",
            )
        detail = CommunityDetail.from_community(community)
        cache.set(path, detail)
    is_member = any(member.id == user_id for member in detail.members)
    return detail.model_copy(update={"is_member": is_member})


@router.get("/{community_ref}/threads", response_model=list[ThreadResponse])
async def get_community_threads(
    ref: CommunityRefDep,
    _user_id: CurrentUserIdDep,
    db: SessionDep,
) -> list[ThreadResponse]:
    threads = community_service.fetch_community_threads(db, ref)
    if threads is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return [ThreadResponse.from_thread(t) for t in threads]


@router.post("/{community_ref}/join", response_model=OperationResult)
async def join(
    ref: CommunityRefDep,
    user_id: CurrentUserIdDep,
    db: SessionDep,
    cache: CacheDep,
) -> OperationResult:
    """Join a community; joining twice is a no-op."""
    return raise_for_result(join_community(db, ref, user_id, cache))


@router.post("/{community_ref}/leave", response_model=OperationResult)
async def leave(
    ref: CommunityRefDep,
    user_id: CurrentUserIdDep,
    db: SessionDep,
    cache: CacheDep,
) -> OperationResult:
    """Leave a community; leaving when not a member is a no-op."""
    return raise_for_result(leave_community(db, ref, user_id, cache))
