# src/threadhub/models/community.py
"""SQLAlchemy models for communities and their membership."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadhub.db.session import Base
from threadhub.db.time import utcnow

if TYPE_CHECKING:
    from .thread import Thread
    from .user import User

# Authoritative membership relation. A row means the user belongs to the
# community; User.communities and Community.members are both views of it.
community_member = Table(
    "community_member",
    Base.metadata,
    Column(
        "community_pk",
        Integer,
        ForeignKey("community.pk", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_pk",
        Integer,
        ForeignKey("app_user.pk", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("joined_at", DateTime(timezone=True), nullable=False, default=utcnow),
)


class Community(Base):
    """A group of users, optionally correlated with a Clerk organization."""

    __tablename__ = "community"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Application-level identifier: a local token or the Clerk organization ID.
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    # Set only when the community is linked to a Clerk organization.
    clerk_id: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by_pk: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("app_user.pk"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    created_by: Mapped[User | None] = relationship("User", foreign_keys=[created_by_pk])
    members: Mapped[list[User]] = relationship(
        "User",
        secondary=community_member,
        back_populates="communities",
    )
    threads: Mapped[list[Thread]] = relationship(
        "Thread",
        back_populates="community",
        order_by="Thread.created_at.desc()",
    )

    def has_member(self, user: User) -> bool:
        """Return True if ``user`` is in the member list."""
        return any(member.pk == user.pk for member in self.members)
