"""UTC helpers for timestamps read back from storage.

Protean's SQL provider maps ``DateTime`` to a column without a time zone, so
rows loaded from PostgreSQL carry naive datetimes while in-memory rows keep
whatever was written. Everything stored by DropRun is UTC, so a naive value
is read as UTC before it is compared with an aware bound.
"""

from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)
