"""Posting, replying and reacting to threads."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased, selectinload

from threadhub.models import Thread, User
from threadhub.schemas.common import OperationResult, PageParams, ResultReason
from threadhub.schemas.thread import ReactionResponse, ThreadPage, ThreadResponse
from threadhub.services.identifiers import CommunityRef
from threadhub.services.user_service import get_user

logger = logging.getLogger(__name__)

# Eager loads shared by every query rendering ThreadResponse.
_THREAD_LOADS = (
    selectinload(Thread.author),
    selectinload(Thread.community),
    selectinload(Thread.likes),
    selectinload(Thread.reposts),
    selectinload(Thread.children).selectinload(Thread.author),
)


def create_thread(
    db: Session,
    text: str,
    author_id: str,
    community_ref: CommunityRef | None = None,
    image: str | None = None,
) -> OperationResult:
    """Post a root thread, optionally inside a community."""
    author = get_user(db, author_id)
    if author is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")

    community = None
    if community_ref is not None:
        community = community_ref.resolve(db)
        if community is None:
            return OperationResult.fail(ResultReason.NOT_FOUND, "Community not found")

    thread = Thread(text=text, image=image, author=author, community=community)
    db.add(thread)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create thread for %s: %s", author_id, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to create thread")

    logger.info("User %s posted thread %d", author_id, thread.pk)
    return OperationResult.ok("Thread created", data=ThreadResponse.from_thread(thread))


def add_comment(db: Session, thread_pk: int, text: str, author_id: str) -> OperationResult:
    """Reply to ``thread_pk``; the reply inherits the parent's community."""
    parent = db.get(Thread, thread_pk)
    if parent is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "Thread not found")
    author = get_user(db, author_id)
    if author is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")

    reply = Thread(text=text, author=author, parent=parent, community=parent.community)
    db.add(reply)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to add comment to %d: %s", thread_pk, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to add comment")

    return OperationResult.ok("Comment added", data=ThreadResponse.from_thread(reply))


def fetch_posts(db: Session, page: PageParams | None = None) -> ThreadPage:
    """Root threads, newest first."""
    page = page or PageParams()
    condition = Thread.parent_pk.is_(None)
    total = db.scalar(select(func.count()).select_from(Thread).where(condition)) or 0
    threads = db.scalars(
        select(Thread)
        .where(condition)
        .options(*_THREAD_LOADS)
        .order_by(Thread.created_at.desc(), Thread.pk.desc())
        .offset(page.offset)
        .limit(page.page_size)
    ).all()
    return ThreadPage(
        threads=[ThreadResponse.from_thread(t) for t in threads],
        is_next=total > page.offset + len(threads),
        total=total,
    )


def fetch_thread(db: Session, thread_pk: int) -> ThreadResponse | None:
    """A thread with two levels of replies."""
    thread = db.get(Thread, thread_pk)
    if thread is None:
        return None
    return ThreadResponse.from_thread(thread, depth=2)


def _toggle(
    db: Session,
    thread_pk: int,
    user_id: str,
    attribute: str,
) -> OperationResult:
    thread = db.get(Thread, thread_pk)
    if thread is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "Thread not found")
    user = get_user(db, user_id)
    if user is None:
        return OperationResult.fail(ResultReason.NOT_FOUND, "User not found")

    users: list[User] = getattr(thread, attribute)
    active = all(u.pk != user.pk for u in users)
    if active:
        users.append(user)
    else:
        users.remove(user)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to toggle %s on %d: %s", attribute, thread_pk, exc)
        return OperationResult.fail(ResultReason.INTERNAL, f"Failed to update {attribute}")

    return OperationResult.ok(
        data=ReactionResponse(thread_pk=thread_pk, active=active, count=len(users))
    )


def toggle_like(db: Session, thread_pk: int, user_id: str) -> OperationResult:
    return _toggle(db, thread_pk, user_id, "likes")


def toggle_repost(db: Session, thread_pk: int, user_id: str) -> OperationResult:
    return _toggle(db, thread_pk, user_id, "reposts")


def fetch_user_threads(db: Session, user_id: str) -> Sequence[Thread] | None:
    """Root threads written by ``user_id``; None when the user is unknown."""
    user = get_user(db, user_id)
    if user is None:
        return None
    return db.scalars(
        select(Thread)
        .where(Thread.author_pk == user.pk, Thread.parent_pk.is_(None))
        .options(*_THREAD_LOADS)
        .order_by(Thread.created_at.desc(), Thread.pk.desc())
    ).all()


def get_activity(db: Session, user_id: str, limit: int = 50) -> Sequence[Thread]:
    """Replies other users left on ``user_id``'s threads, newest first."""
    user = get_user(db, user_id)
    if user is None:
        return []
    parent = aliased(Thread)
    return db.scalars(
        select(Thread)
        .join(parent, Thread.parent_pk == parent.pk)
        .where(parent.author_pk == user.pk, Thread.author_pk != user.pk)
        .options(selectinload(Thread.author))
        .order_by(Thread.created_at.desc(), Thread.pk.desc())
        .limit(limit)
    ).all()
