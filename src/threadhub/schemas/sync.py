"""Schemas describing organization synchronization outcomes."""
from __future__ import annotations

from pydantic import BaseModel, Field

from .community import CommunityResponse


class SyncFailure(BaseModel):
    """A single organization that could not be reconciled."""

    organization_id: str
    error: str


class SyncResult(BaseModel):
    """Outcome of a reconciliation pass.

    ``error`` may be set while ``success`` is true: that is the degraded
    path where local data is returned because the provider was unreachable.
    """

    success: bool
    error: str | None = None
    message: str | None = None
    created: int = 0
    updated: int = 0
    removed: int = 0
    existing: bool | None = None
    failures: list[SyncFailure] = Field(default_factory=list)
    communities: list[CommunityResponse] = Field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of communities affected by the pass."""
        return self.created + self.updated + self.removed


class SyncResponse(BaseModel):
    """Payload returned by the sync endpoints."""

    success: bool
    error: str | None = None
    message: str | None = None
    count: int = 0
    has_fallback_data: bool = False
    communities: list[CommunityResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SyncResult) -> SyncResponse:
        return cls(
            success=result.success,
            error=result.error,
            message=result.message,
            count=result.count,
            has_fallback_data=result.success and result.error is not None,
            communities=result.communities,
        )
