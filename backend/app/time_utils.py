"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone


def coerce_utc(value: datetime | None) -> datetime | None:
    """Return a UTC-normalized datetime, assuming naive values are already UTC.

    SQLite hands back naive datetimes while Postgres returns aware ones, so
    completion times are normalized before they are compared.
    """

    if value is None:
        return None

    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)


def utcnow_naive() -> datetime:
    """Return the current UTC time without tzinfo, for naive ``DateTime`` columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)
