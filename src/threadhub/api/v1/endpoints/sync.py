"""Organization synchronization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from threadhub.schemas.sync import SyncResponse
from threadhub.services.reconciliation import CommunityReconciler

from ..dependencies import CacheDep, CurrentUserIdDep, ProviderDep, RetryPolicyDep, SessionDep

router = APIRouter(prefix="/sync-organization", tags=["sync"])


@router.get("", response_model=SyncResponse)
async def sync_organizations(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    provider: ProviderDep,
    cache: CacheDep,
    retry_policy: RetryPolicyDep,
    org_id: str | None = Query(None, alias="orgId"),
) -> SyncResponse:
    """Reconcile the caller's communities with Clerk.

    With ``orgId`` only that organization is synchronized. The response is
    returned with status 200 even when ``success`` is false so clients can
    show the error next to any fallback data.
    """
    reconciler = CommunityReconciler(db, provider, cache, retry_policy)
    if org_id:
        result = await reconciler.sync_organization(org_id, user_id)
    else:
        result = await reconciler.sync_organizations(user_id)
    return SyncResponse.from_result(result)


@router.post("/full", response_model=SyncResponse)
async def full_sync(
    user_id: CurrentUserIdDep,
    db: SessionDep,
    provider: ProviderDep,
    cache: CacheDep,
    retry_policy: RetryPolicyDep,
) -> SyncResponse:
    """Synchronize, then drop memberships of organizations the caller has left."""
    reconciler = CommunityReconciler(db, provider, cache, retry_policy)
    return SyncResponse.from_result(await reconciler.full_sync(user_id))
