"""CRUD-style helpers for managing users."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from threadhub.models import User
from threadhub.schemas.common import OperationResult, PageParams, ResultReason
from threadhub.schemas.user import UserPage, UserResponse, UserUpdate

__all__ = [
    "get_user",
    "require_user",
    "upsert_user",
    "fetch_user",
    "fetch_users",
    "get_suggested_users",
    "escape_like",
]

logger = logging.getLogger(__name__)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


def get_user(db: Session, user_id: str) -> User | None:
    """Return a user by Clerk ID."""
    return db.scalars(select(User).where(User.id == user_id)).first()


def require_user(db: Session, user_id: str) -> User:
    """Return a user by Clerk ID or raise LookupError."""
    user = get_user(db, user_id)
    if user is None:
        raise LookupError(f"User {user_id} not found")
    return user


def upsert_user(db: Session, user_id: str, update: UserUpdate) -> OperationResult:
    """Create or update the profile for ``user_id`` and mark it onboarded."""
    taken = db.scalars(
        select(User).where(User.username == update.username, User.id != user_id)
    ).first()
    if taken is not None:
        return OperationResult.fail(ResultReason.CONFLICT, "Username is already taken")

    user = get_user(db, user_id)
    created = user is None
    if user is None:
        user = User(id=user_id, username=update.username, name=update.name)
        db.add(user)
    user.username = update.username
    user.name = update.name
    user.bio = update.bio
    user.image = update.image
    user.onboarded = True

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return OperationResult.fail(ResultReason.CONFLICT, "Username is already taken")
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create/update user %s: %s", user_id, exc, exc_info=True)
        return OperationResult.fail(ResultReason.INTERNAL, "Failed to create/update user")

    db.refresh(user)
    return OperationResult.ok(
        "User created" if created else "User updated",
        data=UserResponse.model_validate(user),
    )


def fetch_user(db: Session, user_id: str) -> User | None:
    """Return a user with their communities loaded."""
    return db.scalars(
        select(User).where(User.id == user_id).options(selectinload(User.communities))
    ).first()


def fetch_users(
    db: Session,
    user_id: str,
    search: str = "",
    page: PageParams | None = None,
    descending: bool = True,
) -> UserPage:
    """Search users other than ``user_id`` by username or name."""
    page = page or PageParams()
    conditions = [User.id != user_id]
    term = search.strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        conditions.append(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.name.ilike(pattern, escape="\\"),
            )
        )

    total = db.scalar(select(func.count()).select_from(User).where(*conditions)) or 0
    order = User.created_at.desc() if descending else User.created_at.asc()
    users = db.scalars(
        select(User)
        .where(*conditions)
        .order_by(order, User.pk.desc() if descending else User.pk.asc())
        .offset(page.offset)
        .limit(page.page_size)
    ).all()

    return UserPage(
        users=[UserResponse.model_validate(u) for u in users],
        is_next=total > page.offset + len(users),
        total=total,
    )


def get_suggested_users(db: Session, user_id: str, limit: int = 5) -> Sequence[User]:
    """Return other users, most recently joined first."""
    return db.scalars(
        select(User)
        .where(User.id != user_id)
        .order_by(User.created_at.desc(), User.pk.desc())
        .limit(limit)
    ).all()

