# src/threadhub/models/thread.py
"""SQLAlchemy models for threads, replies and their reactions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadhub.db.session import Base
from threadhub.db.time import utcnow

if TYPE_CHECKING:
    from .community import Community
    from .user import User


def _reaction_table(name: str) -> Table:
    # Composite primary key prevents duplicate reactions from the same user.
    return Table(
        name,
        Base.metadata,
        Column(
            "thread_pk",
            Integer,
            ForeignKey("thread.pk", ondelete="CASCADE"),
            primary_key=True,
        ),
        Column(
            "user_pk",
            Integer,
            ForeignKey("app_user.pk", ondelete="CASCADE"),
            primary_key=True,
        ),
        Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    )


thread_like = _reaction_table("thread_like")
thread_repost = _reaction_table("thread_repost")


class Thread(Base):
    """A post or a reply.

    Root threads have no parent; replies point at their parent through
    ``parent_pk`` and show up in the parent's ``children``.
    """

    __tablename__ = "thread"
    __table_args__ = (
        Index("ix_thread_parent_created", "parent_pk", "created_at"),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    author_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.pk"),
        nullable=False,
        index=True,
    )
    parent_pk: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("thread.pk"),
        nullable=True,
    )
    community_pk: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community.pk"),
        nullable=True,
        index=True,
    )

    author: Mapped[User] = relationship(
        "User",
        back_populates="threads",
        foreign_keys=[author_pk],
    )
    community: Mapped[Community | None] = relationship("Community", back_populates="threads")
    parent: Mapped[Thread | None] = relationship(
        "Thread",
        back_populates="children",
        remote_side="Thread.pk",
    )
    children: Mapped[list[Thread]] = relationship(
        "Thread",
        back_populates="parent",
        order_by="Thread.created_at",
    )
    likes: Mapped[list[User]] = relationship(
        "User",
        secondary=thread_like,
        back_populates="liked_threads",
    )
    reposts: Mapped[list[User]] = relationship(
        "User",
        secondary=thread_repost,
        back_populates="reposted_threads",
    )

    @property
    def is_reply(self) -> bool:
        return self.parent_pk is not None
