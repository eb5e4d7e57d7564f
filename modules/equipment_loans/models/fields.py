"""Row value coercion shared by the entity dataclasses."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from utils.clock import as_utc, parse_instant


def to_date(value: object) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot read a date from {value!r}")


def to_instant(value: object) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        return parse_instant(value)
    raise TypeError(f"Cannot read a timestamp from {value!r}")
