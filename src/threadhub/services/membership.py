"""Join and leave operations on the community membership relation.

Membership is a single row in ``community_member``; both directions of the
relation read that table, so each mutation is one write and cannot leave the
user and community sides disagreeing.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from threadhub.models import Community, User
from threadhub.schemas.common import OperationResult, ResultReason
from threadhub.schemas.community import CommunityResponse
from threadhub.services.cache import ViewCache, get_view_cache
from threadhub.services.identifiers import CommunityRef
from threadhub.services.user_service import get_user

logger = logging.getLogger(__name__)

ALREADY_MEMBER = "Already a member"
NOT_A_MEMBER = "User is not a member"


def invalidate_views(cache: ViewCache, community: Community) -> None:
    """Mark every view addressing ``community`` stale."""
    cache.invalidate_community(str(community.pk), community.id, community.clerk_id)


def add_member(db: Session, community: Community, user: User) -> bool:
    """Append ``user`` to the community unless present; return True if added.

    The caller commits.
    """
    if community.has_member(user):
        return False
    community.members.append(user)
    return True


def remove_member(db: Session, community: Community, user: User) -> bool:
    """Remove ``user`` from the community if present; return True if removed.

    The caller commits.
    """
    if not community.has_member(user):
        return False
    community.members.remove(user)
    return True


def _resolve(
    db: Session, ref: CommunityRef, user_id: str
) -> tuple[Community, User] | OperationResult:
    community = ref.resolve(db)
    if community is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "Community not found")
    user = get_user(db, user_id)
    if user is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")
    return community, user


def join_community(
    db: Session,
    ref: CommunityRef,
    user_id: str,
    cache: ViewCache | None = None,
) -> OperationResult:
    """Add the user identified by Clerk ID ``user_id`` to a community.

    Joining twice is not an error: the second call reports
    ``"Already a member"`` and changes nothing.
    """
    cache = cache or get_view_cache()
    resolved = _resolve(db, ref, user_id)
    if isinstance(resolved, OperationResult):
        return resolved
    community, user = resolved

    try:
        if not add_member(db, community, user):
            return OperationResult.ok(
                ALREADY_MEMBER,
                data=CommunityResponse.from_community(community, is_member=True),
            )
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same membership row first.
        db.rollback()
        db.refresh(community)
        return OperationResult.ok(
            ALREADY_MEMBER,
            data=CommunityResponse.from_community(community, is_member=True),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Error adding %s to community %s: %s", user_id, ref, exc, exc_info=True
        )
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to join community")

    invalidate_views(cache, community)
    logger.info("User %s joined community %s", user_id, community.id)
    return OperationResult.ok(
        "Successfully joined community",
        data=CommunityResponse.from_community(community, is_member=True),
    )


def leave_community(
    db: Session,
    ref: CommunityRef,
    user_id: str,
    cache: ViewCache | None = None,
) -> OperationResult:
    """Remove a user from a community; a non-member is a successful no-op."""
    cache = cache or get_view_cache()
    resolved = _resolve(db, ref, user_id)
    if isinstance(resolved, OperationResult):
        return resolved
    community, user = resolved

    try:
        if not remove_member(db, community, user):
            return OperationResult.ok(
                NOT_A_MEMBER,
                data=CommunityResponse.from_community(community, is_member=False),
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Error removing %s from community %s: %s", user_id, ref, exc, exc_info=True
        )
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to leave community")

    invalidate_views(cache, community)
    logger.info("User %s left community %s", user_id, community.id)
    return OperationResult.ok(
        "Successfully left community",
        data=CommunityResponse.from_community(community, is_member=False),
    )
