# src/threadhub/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import OperationResult, PageParams, ResultReason
from .community import (
    CommunityCreate,
    CommunityDetail,
    CommunityPage,
    CommunityResponse,
    CommunitySummary,
    UserProfile,
)
from .search import SearchResult
from .sync import SyncFailure, SyncResponse, SyncResult
from .thread import CommentCreate, ReactionResponse, ThreadCreate, ThreadPage, ThreadResponse
from .user import UserPage, UserResponse, UserSummary, UserUpdate

__all__ = [
    "OperationResult", "PageParams", "ResultReason",
    "CommunityCreate", "CommunityDetail", "CommunityPage", "CommunityResponse",
    "CommunitySummary", "UserProfile",
    "SearchResult",
    "SyncFailure", "SyncResponse", "SyncResult",
    "CommentCreate", "ReactionResponse", "ThreadCreate", "ThreadPage", "ThreadResponse",
    "UserPage", "UserResponse", "UserSummary", "UserUpdate",
]
