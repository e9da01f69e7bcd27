"""User-related Pydantic schemas."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class UserSummary(BaseModel):
    """Compact author/member representation embedded in other payloads."""

    id: str
    name: str
    username: str
    image: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserSummary):
    """Full profile returned by the users endpoints."""

    bio: str | None = None
    onboarded: bool


class UserUpdate(BaseModel):
    """Profile fields submitted during onboarding or profile edits."""

    username: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    bio: str = Field("", max_length=1000)
    image: str | None = Field(None, description="Avatar image URL")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Usernames are stored lowercase and limited to URL-safe characters."""
        if not _USERNAME_PATTERN.match(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v.lower()


class UserPage(BaseModel):
    """One page of users."""

    users: list[UserResponse]
    is_next: bool
    total: int
