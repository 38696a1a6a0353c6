"""
Datetime helpers.

All instants in the application are timezone-aware UTC. Some drivers (SQLite)
hand back naive datetimes for DateTime(timezone=True) columns; as_utc treats
those as UTC so comparisons never mix naive and aware values.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
