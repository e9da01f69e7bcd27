# src/threadhub/schemas/thread.py
"""Thread-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from threadhub.db.time import as_utc

from .community import CommunitySummary
from .user import UserSummary

if TYPE_CHECKING:
    from threadhub.models import Thread


class ThreadCreate(BaseModel):
    """Schema for posting a new root thread."""

    text: str = Field(..., min_length=1, max_length=5000)
    image: str | None = Field(None, description="Image URL")
    community_id: str | None = Field(
        None,
        description="Community storage pk, public id or organization id",
    )


class CommentCreate(BaseModel):
    """Schema for replying to a thread."""

    text: str = Field(..., min_length=1, max_length=5000)


class ThreadResponse(BaseModel):
    """Thread with author, counters and a bounded tree of replies."""

    pk: int
    text: str
    image: str | None
    created_at: datetime
    author: UserSummary
    parent_pk: int | None
    community: CommunitySummary | None
    like_count: int
    repost_count: int
    reply_count: int
    children: list[ThreadResponse] = Field(default_factory=list)

    @classmethod
    def from_thread(cls, thread: Thread, depth: int = 1) -> ThreadResponse:
        """Build a response including ``depth`` levels of replies."""
        children = (
            [cls.from_thread(child, depth - 1) for child in thread.children]
            if depth > 0
            else []
        )
        return cls(
            pk=thread.pk,
            text=thread.text,
            image=thread.image,
            created_at=as_utc(thread.created_at),
            author=UserSummary.model_validate(thread.author),
            parent_pk=thread.parent_pk,
            community=(
                CommunitySummary.model_validate(thread.community)
                if thread.community is not None
                else None
            ),
            like_count=len(thread.likes),
            repost_count=len(thread.reposts),
            reply_count=len(thread.children),
            children=children,
        )


class ThreadPage(BaseModel):
    """One page of the reverse-chronological feed."""

    threads: list[ThreadResponse]
    is_next: bool
    total: int


class ReactionResponse(BaseModel):
    """State of a like/repost toggle after it was applied."""

    thread_pk: int
    active: bool
    count: int
