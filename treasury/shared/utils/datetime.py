"""
UTC datetime helpers.

Every timestamp stored or compared by the service (assignment expiry,
outbox attempts, directory sync times) is timezone-aware UTC. Drivers
that drop tzinfo (SQLite in tests) are normalized with ensure_utc at
the repository boundary.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Use this instead of datetime.now() or datetime.utcnow().
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - None stays None
    - naive values are taken to be UTC
    - aware values are converted to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)

