"""Reconcile local communities with a user's Clerk organization memberships.

Clerk is the source of truth for which organizations a user belongs to; the
local store is the source of truth for everything else. A pass brings the
user's membership rows and the organizations' display fields in line with
Clerk. Each community is committed on its own, so a pass that fails halfway
leaves the already-reconciled communities in place and a rerun converges.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from threadhub.models import Community, User
from threadhub.schemas.community import CommunityResponse
from threadhub.schemas.sync import SyncFailure, SyncResult
from threadhub.services.cache import ViewCache, get_view_cache
from threadhub.services.community_service import (
    apply_organization_fields,
    community_from_organization,
)
from threadhub.services.identity import IdentityProvider, IdentityProviderError
from threadhub.services.membership import add_member, invalidate_views, remove_member
from threadhub.services.retry import RetryPolicy, Sleep, call_with_policy
from threadhub.services.user_service import get_user

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_ERROR = "Using existing communities data due to Clerk API issue"
USER_NOT_FOUND = "User not found locally"


class CommunityReconciler:
    """Drive one user's communities towards their Clerk memberships."""

    def __init__(
        self,
        db: Session,
        provider: IdentityProvider,
        cache: ViewCache | None = None,
        retry_policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.db = db
        self.provider = provider
        self.cache = cache or get_view_cache()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await call_with_policy(operation, self.retry_policy, sleep=self._sleep)

    async def _organization_ids(self, user_id: str) -> list[str]:
        memberships = await self._call(lambda: self.provider.list_memberships(user_id))
        # Preserve provider order, drop duplicates.
        return list(dict.fromkeys(m.organization.id for m in memberships))

    async def sync_organizations(self, user_id: str) -> SyncResult:
        """Create or refresh a community for every organization the user is in."""
        started = time.perf_counter()
        user = get_user(self.db, user_id)
        if user is None:
            return SyncResult(success=False, error=USER_NOT_FOUND)

        try:
            organization_ids = await self._organization_ids(user_id)
        except IdentityProviderError as exc:
            logger.error("Error listing organizations for %s: %s", user_id, exc)
            return self._fallback(user, exc)

        known = {
            c.clerk_id: c
            for c in self.db.scalars(
                select(Community).where(Community.clerk_id.in_(organization_ids))
            )
        }
        result = SyncResult(success=True)
        synced: list[Community] = []

        for organization_id in organization_ids:
            if organization_id in known:
                continue
            try:
                organization = await self._call(
                    lambda oid=organization_id: self.provider.get_organization(oid)
                )
                community = community_from_organization(self.db, organization, user)
                self.db.commit()
            except Exception as exc:
                self._record_failure(result, organization_id, exc, "creating")
                continue
            result.created += 1
            synced.append(community)
            invalidate_views(self.cache, community)

        for organization_id, community in known.items():
            try:
                organization = await self._call(
                    lambda oid=organization_id: self.provider.get_organization(oid)
                )
                changed = apply_organization_fields(
                    self.db,
                    community,
                    organization.name,
                    organization.slug,
                    organization.image_url,
                )
                joined = add_member(self.db, community, user)
                if changed or joined:
                    self.db.commit()
            except Exception as exc:
                self._record_failure(result, organization_id, exc, "updating")
                continue
            synced.append(community)
            if changed or joined:
                result.updated += 1
                invalidate_views(self.cache, community)

        result.message = (
            f"Synchronized {result.created} new and {result.updated} existing communities"
        )
        result.communities = [
            CommunityResponse.from_community(c, is_member=True) for c in synced
        ]
        logger.info(
            "%s for %s in %.2fs (%d failures)",
            result.message,
            user_id,
            time.perf_counter() - started,
            len(result.failures),
        )
        return result

    def _record_failure(
        self,
        result: SyncResult,
        organization_id: str,
        exc: Exception,
        action: str,
    ) -> None:
        """Roll back one organization's changes and note why it was skipped.

        Provider and database errors are expected; anything else is logged
        with its traceback.
        """
        self.db.rollback()
        expected = isinstance(exc, (IdentityProviderError, SQLAlchemyError))
        logger.error(
            "Error %s community for organization %s: %s",
            action,
            organization_id,
            exc,
            exc_info=not expected,
        )
        result.failures.append(SyncFailure(organization_id=organization_id, error=str(exc)))

    def _fallback(self, user: User, exc: IdentityProviderError) -> SyncResult:
        """Serve the user's locally known communities when Clerk is unreachable."""
        communities = list(user.communities)
        if not communities:
            return SyncResult(success=False, error=f"Clerk API Error: {exc}")
        logger.warning(
            "Falling back to %d local communities for %s", len(communities), user.id
        )
        return SyncResult(
            success=True,
            error=FALLBACK_ERROR,
            message=f"Loaded {len(communities)} communities from local data",
            communities=[
                CommunityResponse.from_community(c, is_member=True) for c in communities
            ],
        )

    async def sync_organization(self, organization_id: str, user_id: str) -> SyncResult:
        """Ensure a community exists for one organization and the user belongs to it."""
        user = get_user(self.db, user_id)
        if user is None:
            return SyncResult(success=False, error=USER_NOT_FOUND)

        community = self.db.scalars(
            select(Community).where(Community.clerk_id == organization_id)
        ).first()
        if community is not None:
            try:
                if add_member(self.db, community, user):
                    self.db.commit()
                    invalidate_views(self.cache, community)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Error joining %s to %s: %s", user_id, organization_id, exc)
                return SyncResult(success=False, error="Failed to update membership")
            return SyncResult(
                success=True,
                existing=True,
                message="Community already exists",
                communities=[CommunityResponse.from_community(community, is_member=True)],
            )

        try:
            organization = await self._call(
                lambda: self.provider.get_organization(organization_id)
            )
        except IdentityProviderError as exc:
            logger.error("Error fetching organization %s: %s", organization_id, exc)
            return SyncResult(success=False, error=str(exc))

        try:
            community = community_from_organization(self.db, organization, user)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error creating community for %s: %s", organization_id, exc)
            return SyncResult(success=False, error="Failed to create community")

        invalidate_views(self.cache, community)
        logger.info("Created community %s from organization", community.id)
        return SyncResult(
            success=True,
            existing=False,
            created=1,
            message="Community created from organization",
            communities=[CommunityResponse.from_community(community, is_member=True)],
        )

    async def cleanup_deleted_organizations(self, user_id: str) -> SyncResult:
        """Drop the user from linked communities whose organization they left."""
        user = get_user(self.db, user_id)
        if user is None:
            return SyncResult(success=False, error=USER_NOT_FOUND)

        try:
            current = set(await self._organization_ids(user_id))
        except IdentityProviderError as exc:
            logger.error("Error listing organizations for %s: %s", user_id, exc)
            return SyncResult(success=False, error=f"Clerk API Error: {exc}")

        stale = [c for c in user.communities if c.clerk_id and c.clerk_id not in current]
        result = SyncResult(success=True)
        for community in stale:
            try:
                remove_member(self.db, community, user)
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Error removing %s from %s: %s", user_id, community.id, exc)
                result.failures.append(
                    SyncFailure(
                        organization_id=community.clerk_id or community.id,
                        error=str(exc),
                    )
                )
                continue
            result.removed += 1
            invalidate_views(self.cache, community)

        result.message = (
            f"Removed user from {result.removed} communities that were deleted in Clerk"
            if result.removed
            else "No communities to clean up"
        )
        logger.info("Cleanup for %s: %s", user_id, result.message)
        return result

    async def full_sync(self, user_id: str) -> SyncResult:
        """Run :meth:`sync_organizations` then :meth:`cleanup_deleted_organizations`."""
        synced = await self.sync_organizations(user_id)
        if not synced.success:
            return synced
        cleaned = await self.cleanup_deleted_organizations(user_id)
        if not cleaned.success:
            return synced.model_copy(update={"error": synced.error or cleaned.error})

        return SyncResult(
            success=True,
            error=synced.error,
            message=f"{synced.message}. {cleaned.message}",
            created=synced.created,
            updated=synced.updated,
            removed=cleaned.removed,
            failures=[*synced.failures, *cleaned.failures],
            communities=synced.communities,
        )
