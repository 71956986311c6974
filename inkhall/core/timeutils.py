# inkhall/core/timeutils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time; wrapped so tests can patch it."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalise a datetime to aware UTC.

    SQLite hands back naive values, which are always stored as UTC here.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
