"""Timestamp helpers for document serialization and elapsed-time rules.

All stored timestamps are naive UTC datetimes serialized as ISO-8601.
"""
from datetime import datetime
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def days_between(later: datetime, earlier: datetime) -> float:
    """Fractional days from earlier to later (negative if reversed)."""
    return (later - earlier).total_seconds() / SECONDS_PER_DAY
