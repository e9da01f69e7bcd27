"""Clerk webhook verification and dispatch.

Clerk delivers organization and membership events through Svix. The payload
is verified against the signing secret before any handler runs; handlers
reuse the community and membership services so webhook-driven changes follow
the same rules as user-driven ones.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from threadhub.core.settings import settings
from threadhub.models import Community
from threadhub.schemas.common import OperationResult, ResultReason
from threadhub.schemas.community import CommunityResponse
from threadhub.services.cache import ViewCache, get_view_cache
from threadhub.services.community_service import (
    community_from_organization,
    detach_organization,
    update_community_info,
)
from threadhub.services.identifiers import CommunityRef
from threadhub.services.identity import ExternalOrganization
from threadhub.services.membership import invalidate_views, join_community, leave_community
from threadhub.services.user_service import get_user

logger = logging.getLogger(__name__)

Handler = Callable[[Session, Mapping[str, Any], ViewCache], OperationResult]


class WebhookSignatureError(Exception):
    """Raised when a webhook payload fails signature verification."""


class WebhookConfigurationError(Exception):
    """Raised when webhooks arrive but no signing secret is configured."""


def verify_event(
    payload: bytes,
    headers: Mapping[str, str],
    secret: str | None = None,
) -> dict[str, Any]:
    """Verify the Svix signature headers and return the decoded event."""
    secret = secret if secret is not None else settings.clerk_webhook_secret
    if not secret:
        raise WebhookConfigurationError("CLERK_WEBHOOK_SECRET is not configured")
    try:
        event = Webhook(secret).verify(payload, dict(headers))
    except WebhookVerificationError as exc:
        raise WebhookSignatureError(str(exc)) from exc
    if not isinstance(event, dict) or "type" not in event:
        raise WebhookSignatureError("Malformed webhook payload")
    return event


def _organization_created(
    db: Session, data: Mapping[str, Any], cache: ViewCache
) -> OperationResult:
    organization = ExternalOrganization.from_payload(data)
    existing = db.scalars(
        select(Community).where(Community.clerk_id == organization.id)
    ).first()
    if existing is not None:
        return OperationResult.ok("Community already exists")

    creator = get_user(db, data.get("created_by") or "")
    if creator is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")

    try:
        community = community_from_organization(db, organization, creator)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create community for %s: %s", organization.id, exc)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to create community")

    invalidate_views(cache, community)
    return OperationResult.ok(
        "Community created", data=CommunityResponse.from_community(community)
    )


def _organization_updated(
    db: Session, data: Mapping[str, Any], cache: ViewCache
) -> OperationResult:
    organization = ExternalOrganization.from_payload(data)
    return update_community_info(
        db,
        organization.id,
        name=organization.name,
        slug=organization.slug,
        image=organization.image_url,
        cache=cache,
    )


def _organization_deleted(
    db: Session, data: Mapping[str, Any], cache: ViewCache
) -> OperationResult:
    return detach_organization(db, str(data["id"]), cache=cache)


def _membership_refs(data: Mapping[str, Any]) -> tuple[CommunityRef, str]:
    organization_id = str(data["organization"]["id"])
    user_id = str(data["public_user_data"]["user_id"])
    return CommunityRef.external(organization_id), user_id


def _membership_created(
    db: Session, data: Mapping[str, Any], cache: ViewCache
) -> OperationResult:
    ref, user_id = _membership_refs(data)
    return join_community(db, ref, user_id, cache)


def _membership_deleted(
    db: Session, data: Mapping[str, Any], cache: ViewCache
) -> OperationResult:
    ref, user_id = _membership_refs(data)
    return leave_community(db, ref, user_id, cache)


HANDLERS: dict[str, Handler] = {
    "organization.created": _organization_created,
    "organization.updated": _organization_updated,
    "organization.deleted": _organization_deleted,
    "organizationMembership.created": _membership_created,
    "organizationMembership.deleted": _membership_deleted,
}


def handle_event(
    db: Session, event: Mapping[str, Any], cache: ViewCache | None = None
) -> OperationResult:
    """Dispatch a verified event to its handler."""
    cache = cache or get_view_cache()
    event_type = str(event.get("type", ""))
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.debug("Ignoring webhook event %s", event_type)
        return OperationResult.ok(f"Ignored event {event_type}")

    data = event.get("data")
    if not isinstance(data, Mapping):
        return OperationResult.fail(ResultReason.INVALID, "Event has no data")
    try:
        result = handler(db, data, cache)
    except (KeyError, TypeError) as exc:
        logger.warning("Malformed %s payload: %s", event_type, exc)
        return OperationResult.fail(ResultReason.INVALID, f"Malformed {event_type} payload")

    logger.info(
        "Webhook %s handled: %s", event_type, result.message if result.success else result.error
    )
    return result
