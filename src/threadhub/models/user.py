# src/threadhub/models/user.py
"""SQLAlchemy model for user profiles keyed by their Clerk identity."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadhub.db.session import Base
from threadhub.db.time import utcnow

if TYPE_CHECKING:
    from .community import Community
    from .thread import Thread


class User(Base):
    """A person known to the identity provider.

    ``id`` is the opaque Clerk user ID; ``pk`` is the storage identifier that
    every other table references.
    """

    __tablename__ = "app_user"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    onboarded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    threads: Mapped[list[Thread]] = relationship(
        "Thread",
        back_populates="author",
        foreign_keys="Thread.author_pk",
        order_by="Thread.created_at.desc()",
    )
    # Both sides of the membership relation read and write the single
    # community_member table.
    communities: Mapped[list[Community]] = relationship(
        "Community",
        secondary="community_member",
        back_populates="members",
    )
    liked_threads: Mapped[list[Thread]] = relationship(
        "Thread",
        secondary="thread_like",
        back_populates="likes",
    )
    reposted_threads: Mapped[list[Thread]] = relationship(
        "Thread",
        secondary="thread_repost",
        back_populates="reposts",
    )
