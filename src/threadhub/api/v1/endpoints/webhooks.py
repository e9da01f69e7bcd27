"""Clerk webhook intake."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from threadhub.schemas.common import OperationResult
from threadhub.services.webhooks import (
    WebhookConfigurationError,
    WebhookSignatureError,
    handle_event,
    verify_event,
)

from ..dependencies import CacheDep, SessionDep, raise_for_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/clerk", response_model=OperationResult)
async def clerk_webhook(request: Request, db: SessionDep, cache: CacheDep) -> OperationResult:
    """Verify and apply an organization or membership event from Clerk."""
    payload = await request.body()
    try:
        event = verify_event(payload, request.headers)
    except WebhookConfigurationError as err:
        logger.error("Webhook received but %s", err)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook verification is not configured",
        ) from err
    except WebhookSignatureError as err:
        logger.warning("Rejected webhook: %s", err)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        ) from err

    return raise_for_result(handle_event(db, event, cache))
