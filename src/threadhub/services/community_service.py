"""Community creation, listing and organization bookkeeping."""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from threadhub.models import Community, Thread, User, community_member
from threadhub.schemas.common import OperationResult, PageParams, ResultReason
from threadhub.schemas.community import CommunityCreate, CommunityPage, CommunityResponse
from threadhub.services.cache import ViewCache, get_view_cache
from threadhub.services.identifiers import CommunityRef
from threadhub.services.identity import (
    ADMIN_ROLE,
    ExternalOrganization,
    IdentityProvider,
    IdentityProviderDisabledError,
    IdentityProviderError,
)
from threadhub.services.membership import invalidate_views
from threadhub.services.retry import RetryPolicy, Sleep, call_with_policy
from threadhub.services.user_service import escape_like, get_user

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "community_"
DUPLICATE_USERNAME = "Community with this username already exists"
DEFAULT_ORGANIZATION_NAME = "Unnamed Organization"


def new_local_id() -> str:
    """Return a fresh application-level id for a community without an organization."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:16]}"


def username_taken(db: Session, username: str, exclude_pk: int | None = None) -> bool:
    stmt = select(Community.pk).where(Community.username == username)
    if exclude_pk is not None:
        stmt = stmt.where(Community.pk != exclude_pk)
    return db.scalars(stmt).first() is not None


def available_username(db: Session, base: str, exclude_pk: int | None = None) -> str:
    """Return ``base`` or the first ``base-N`` no other community uses."""
    candidate = base
    suffix = 1
    while username_taken(db, candidate, exclude_pk):
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate


def default_slug(organization_id: str) -> str:
    """Username for an organization that has no slug of its own."""
    return f"org-{organization_id.removeprefix('org_')[:12].lower()}"


def community_from_organization(
    db: Session, organization: ExternalOrganization, creator: User
) -> Community:
    """Add a community mirroring ``organization`` with ``creator`` as sole member.

    The caller commits.
    """
    community = Community(
        id=organization.id,
        clerk_id=organization.id,
        name=organization.name or DEFAULT_ORGANIZATION_NAME,
        username=available_username(
            db, organization.slug or default_slug(organization.id)
        ),
        image=organization.image_url,
        bio="",
        created_by=creator,
    )
    community.members.append(creator)
    db.add(community)
    return community


def apply_organization_fields(
    db: Session,
    community: Community,
    name: str | None,
    slug: str | None,
    image: str | None,
) -> bool:
    """Copy drifted organization fields onto ``community``; return True if any changed.

    Empty values from the provider never blank out local data. A slug that
    collides with another community's username is left unapplied.
    """
    changed = False
    if name and community.name != name:
        community.name = name
        changed = True
    if slug and community.username != slug:
        if username_taken(db, slug, exclude_pk=community.pk):
            logger.warning(
                "Not renaming community %s to %s: username in use", community.id, slug
            )
        else:
            community.username = slug
            changed = True
    if image and community.image != image:
        community.image = image
        changed = True
    return changed


async def create_community(
    db: Session,
    params: CommunityCreate,
    creator_id: str,
    provider: IdentityProvider | None = None,
    cache: ViewCache | None = None,
    retry_policy: RetryPolicy | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> OperationResult:
    """Create a community owned by ``creator_id``.

    The local row is committed first. The matching Clerk organization is
    created afterwards and only links the community when it succeeds; an
    external failure leaves the community local-only.
    """
    cache = cache or get_view_cache()
    name = params.name.strip()
    username = params.username.strip()
    if not name or not username:
        return OperationResult.fail(ResultReason.INVALID, "Name and username are required")

    if username_taken(db, username):
        return OperationResult.fail(ResultReason.CONFLICT, DUPLICATE_USERNAME)

    creator = get_user(db, creator_id)
    if creator is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")

    community = Community(
        id=new_local_id(),
        name=name,
        username=username,
        bio=params.bio,
        image=params.image,
        is_private=params.is_private,
        created_by=creator,
    )
    community.members.append(creator)
    db.add(community)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return OperationResult.fail(ResultReason.CONFLICT, DUPLICATE_USERNAME)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create community %s: %s", username, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to create community")

    logger.info("Created community %s (%s) for %s", community.id, username, creator_id)
    invalidate_views(cache, community)

    message = "Community created"
    if params.create_external and provider is not None:
        policy = retry_policy or RetryPolicy.from_settings()
        warning = await _link_organization(
            db, community, creator_id, provider, cache, policy, sleep
        )
        if warning:
            message = f"Community created locally; {warning}"

    return OperationResult.ok(
        message, data=CommunityResponse.from_community(community, is_member=True)
    )


async def _link_organization(
    db: Session,
    community: Community,
    creator_id: str,
    provider: IdentityProvider,
    cache: ViewCache,
    policy: RetryPolicy,
    sleep: Sleep,
) -> str | None:
    """Create the organization for ``community``; return a warning on failure."""
    try:
        organization = await call_with_policy(
            lambda: provider.create_organization(
                community.name, community.username, creator_id
            ),
            policy,
            sleep=sleep,
        )
    except IdentityProviderDisabledError:
        logger.debug("Identity provider disabled; %s stays local", community.id)
        return None
    except IdentityProviderError as exc:
        logger.error("Error creating organization for %s: %s", community.id, exc)
        return f"organization could not be created: {exc}"

    previous_id = community.id
    community.id = organization.id
    community.clerk_id = organization.id
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Failed to link community %s to %s: %s", previous_id, organization.id, exc
        )
        return "organization was created but could not be linked"
    cache.invalidate_community(previous_id, organization.id)

    try:
        await call_with_policy(
            lambda: provider.create_membership(organization.id, creator_id, ADMIN_ROLE),
            policy,
            sleep=sleep,
        )
    except IdentityProviderError as exc:
        logger.warning(
            "Could not add %s as admin of %s: %s", creator_id, organization.id, exc
        )
    return None


def _member_pks(db: Session, user_id: str) -> set[int]:
    stmt = (
        select(community_member.c.community_pk)
        .join(User, User.pk == community_member.c.user_pk)
        .where(User.id == user_id)
    )
    return set(db.scalars(stmt).all())


def fetch_communities(
    db: Session,
    search: str = "",
    page: PageParams | None = None,
    user_id: str | None = None,
) -> CommunityPage:
    """Search communities by name or username, newest first."""
    page = page or PageParams()
    conditions = []
    term = search.strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        conditions.append(
            or_(
                Community.name.ilike(pattern, escape="\\"),
                Community.username.ilike(pattern, escape="\\"),
            )
        )

    total = db.scalar(select(func.count()).select_from(Community).where(*conditions)) or 0
    communities = db.scalars(
        select(Community)
        .where(*conditions)
        .options(selectinload(Community.members))
        .order_by(Community.created_at.desc(), Community.pk.desc())
        .offset(page.offset)
        .limit(page.page_size)
    ).all()

    member_of = _member_pks(db, user_id) if user_id else None
    return CommunityPage(
        communities=[
            CommunityResponse.from_community(
                c, is_member=None if member_of is None else c.pk in member_of
            )
            for c in communities
        ],
        is_next=total > page.offset + len(communities),
        total=total,
    )


def fetch_community_details(db: Session, ref: CommunityRef) -> Community | None:
    """Return a community with its creator and members loaded."""
    community = ref.resolve(db)
    if community is None:
        return None
    return db.scalars(
        select(Community)
        .where(Community.pk == community.pk)
        .options(selectinload(Community.members), selectinload(Community.created_by))
    ).one()


def get_user_communities(db: Session, user_id: str) -> Sequence[Community]:
    return db.scalars(
        select(Community)
        .join(community_member, community_member.c.community_pk == Community.pk)
        .join(User, User.pk == community_member.c.user_pk)
        .where(User.id == user_id)
        .order_by(Community.name, Community.pk)
    ).all()


def fetch_suggested_communities(
    db: Session, user_id: str, limit: int = 3
) -> Sequence[Community]:
    """Newest communities the user has not joined."""
    joined = (
        select(community_member.c.community_pk)
        .join(User, User.pk == community_member.c.user_pk)
        .where(User.id == user_id)
    )
    return db.scalars(
        select(Community)
        .where(Community.pk.not_in(joined))
        .order_by(Community.created_at.desc(), Community.pk.desc())
        .limit(limit)
    ).all()


def fetch_community_threads(db: Session, ref: CommunityRef) -> Sequence[Thread] | None:
    """Root threads posted to a community, newest first; None if it does not exist."""
    community = ref.resolve(db)
    if community is None:
        return None
    return db.scalars(
        select(Thread)
        .where(Thread.community_pk == community.pk, Thread.parent_pk.is_(None))
        .options(
            selectinload(Thread.author),
            selectinload(Thread.children).selectinload(Thread.author),
        )
        .order_by(Thread.created_at.desc(), Thread.pk.desc())
    ).all()


def update_community_info(
    db: Session,
    org_id: str,
    name: str | None = None,
    slug: str | None = None,
    image: str | None = None,
    cache: ViewCache | None = None,
) -> OperationResult:
    """Apply organization field changes to the linked community."""
    cache = cache or get_view_cache()
    community = CommunityRef.external(org_id).resolve(db)
    if community is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "Community not found")

    if not apply_organization_fields(db, community, name, slug, image):
        return OperationResult.ok("Community already up to date")
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to update community %s: %s", org_id, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to update community")

    invalidate_views(cache, community)
    return OperationResult.ok(
        "Community updated", data=CommunityResponse.from_community(community)
    )


def detach_organization(
    db: Session, org_id: str, cache: ViewCache | None = None
) -> OperationResult:
    """Unlink a community from a deleted organization.

    ``clerk_id`` is cleared and every membership removed; threads and the
    community's public id survive.
    """
    cache = cache or get_view_cache()
    community = CommunityRef.external(org_id).resolve(db)
    if community is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "Community not found")

    removed = len(community.members)
    community.clerk_id = None
    community.members.clear()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to detach community %s: %s", org_id, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to detach community")

    invalidate_views(cache, community)
    cache.invalidate_community(org_id)
    logger.info(
        "Detached community %s from organization (%d members removed)",
        community.id,
        removed,
    )
    return OperationResult.ok(
        f"Community detached, {removed} memberships removed",
        data=CommunityResponse.from_community(community),
    )
