# src/threadhub/models/__init__.py
"""SQLAlchemy models for the Threadhub application."""

from .community import Community, community_member
from .thread import Thread, thread_like, thread_repost
from .user import User

__all__ = [
    "Community", "community_member",
    "Thread", "thread_like", "thread_repost",
    "User",
]
