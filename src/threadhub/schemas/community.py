# src/threadhub/schemas/community.py
"""Community-related Pydantic schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .user import UserResponse, UserSummary

if TYPE_CHECKING:
    from threadhub.models import Community, User


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str = Field(..., max_length=100)
    username: str = Field(..., max_length=128)
    bio: str | None = None
    image: str | None = None
    is_private: bool = False
    create_external: bool = Field(
        True,
        description="Also create a matching organization in the identity provider",
    )


class CommunitySummary(BaseModel):
    """Minimal community reference embedded in threads."""

    pk: int
    id: str
    name: str
    image: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CommunityResponse(CommunitySummary):
    """Schema for community information returned by the API."""

    clerk_id: str | None
    username: str
    bio: str | None
    is_private: bool
    member_count: int = 0
    is_member: bool | None = None

    @classmethod
    def from_community(
        cls, community: Community, *, is_member: bool | None = None
    ) -> CommunityResponse:
        return cls(
            pk=community.pk,
            id=community.id,
            clerk_id=community.clerk_id,
            name=community.name,
            username=community.username,
            image=community.image,
            bio=community.bio,
            is_private=community.is_private,
            member_count=len(community.members),
            is_member=is_member,
        )


class CommunityDetail(CommunityResponse):
    """Community with its members."""

    members: list[UserSummary] = Field(default_factory=list)
    created_by: UserSummary | None = None

    @classmethod
    def from_community(
        cls, community: Community, *, is_member: bool | None = None
    ) -> CommunityDetail:
        base = CommunityResponse.from_community(community, is_member=is_member)
        return cls(
            **base.model_dump(),
            members=[UserSummary.model_validate(m) for m in community.members],
            created_by=(
                UserSummary.model_validate(community.created_by)
                if community.created_by is not None
                else None
            ),
        )


class CommunityPage(BaseModel):
    """One page of communities."""

    communities: list[CommunityResponse]
    is_next: bool
    total: int


class UserProfile(UserResponse):
    """A profile together with the communities it belongs to."""

    communities: list[CommunityResponse] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: User) -> UserProfile:
        return cls(
            **UserResponse.model_validate(user).model_dump(),
            communities=[
                CommunityResponse.from_community(c, is_member=True)
                for c in user.communities
            ],
        )
