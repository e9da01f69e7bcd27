# src/threadhub/db/time.py
"""Timestamp helpers shared by models and schemas."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Column default: the current time, timezone-aware in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from backends without time zones (SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
