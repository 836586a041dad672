"""Clock and day-boundary helpers shared by clock actions and sweeps."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from timekeeping.config import settings


def utcnow() -> datetime:
    """Current UTC time. Wrapped so tests can patch it."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_key(value: datetime) -> date:
    """Calendar day a timestamp belongs to, in the configured timezone.

    This is the only day boundary used for attendance records: clock-in,
    clock-out, correction approval and both sweeps all go through it.
    """
    return ensure_utc(value).astimezone(ZoneInfo(settings.TIMEZONE)).date()


def today() -> date:
    return day_key(utcnow())
