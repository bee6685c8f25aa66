from __future__ import annotations

from datetime import UTC, datetime

# Display formats used in sync outcome messages.
LAST_SYNC_FORMAT = "%d.%m.%Y %H:%M"
COMPLETED_SYNC_FORMAT = "%d/%m/%Y %H:%M"


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_naive_utc(value: datetime) -> datetime:
    """Naive UTC datetime for storage, so SQLite compares values as text."""
    return ensure_aware(value).astimezone(UTC).replace(tzinfo=None)
