"""UTC day boundaries for the once-per-day rewards.

A reward claimed at any time on a UTC calendar day becomes available again
exactly at the next 00:00:00 UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_utc(now: datetime | None = None) -> date:
    """The current UTC calendar date."""
    now = now or utc_now()
    return now.astimezone(timezone.utc).date()


def next_midnight_utc(now: datetime | None = None) -> datetime:
    """The first instant of the next UTC day."""
    day = today_utc(now) + timedelta(days=1)
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def is_available(last_claim: date | None, now: datetime | None = None) -> bool:
    """True if nothing was claimed since the most recent UTC midnight."""
    return last_claim is None or last_claim < today_utc(now)


def seconds_until_reset(now: datetime | None = None) -> int:
    now = now or utc_now()
    return max(0, int((next_midnight_utc(now) - now).total_seconds()))
