"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResultReason(str, Enum):
    """Why an operation did not succeed; drives the HTTP status code."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID = "invalid"
    EXTERNAL = "external"
    INTERNAL = "internal"


class OperationResult(BaseModel):
    """Structured outcome returned by every externally callable operation.

    Operations never raise across their boundary; failures are reported
    through ``success=False`` with an ``error`` and a ``reason``.
    """

    success: bool
    message: str | None = None
    error: str | None = None
    reason: ResultReason | None = Field(default=None, exclude=True)
    data: Any = None

    @classmethod
    def ok(cls, message: str | None = None, data: Any = None) -> OperationResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, reason: ResultReason, error: str) -> OperationResult:
        return cls(success=False, reason=reason, error=error)


class PageParams(BaseModel):
    """Offset pagination expressed as 1-based page numbers."""

    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size
