"""Injectable clocks and UTC helpers.

Time-based logic never calls ``datetime.now()`` directly; services receive a
clock object and ask it for the current instant. ``FixedClock`` keeps tests
deterministic.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, instant: datetime) -> None:
        self._instant = as_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = as_utc(instant)

    def advance(self, **delta: float) -> datetime:
        self._instant = self._instant + timedelta(**delta)
        return self._instant


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime.

    Naive values are taken to already be UTC; SQLite hands them back that way.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def utc_date(value: datetime) -> date:
    return as_utc(value).date()


def parse_instant(text: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into UTC."""

    return as_utc(datetime.fromisoformat(text.strip().replace("Z", "+00:00")))


__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "as_utc",
    "start_of_day",
    "utc_date",
    "parse_instant",
]
