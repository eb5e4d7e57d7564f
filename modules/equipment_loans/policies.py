"""Due-date and fine rules for equipment loans.

Both families are pure: the same inputs always produce the same output and
nothing is read from the clock or the stores. The variant in use is picked
once from :class:`utils.app_settings.LoanSettings`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Mapping, Optional, Protocol

from utils.app_settings import LoanSettings
from utils.clock import as_utc

from .models import Equipment, Loan

DEFAULT_LOAN_DAYS = 7


class DueDatePolicy(Protocol):
    def calculate(self, start_date: date, equipment: Equipment) -> date:
        ...


class FinePolicy(Protocol):
    def compute(self, loan: Loan, now: datetime) -> int:
        ...


# --------------------------------------------------------------------------- due dates


@dataclass(frozen=True)
class FixedDaysPolicy:
    """Every loan runs ``days`` calendar days from its start date."""

    days: int = DEFAULT_LOAN_DAYS

    def __post_init__(self) -> None:
        if self.days < 0:
            raise ValueError("days must not be negative")

    def calculate(self, start_date: date, equipment: Equipment) -> date:
        return start_date + timedelta(days=self.days)


@dataclass(frozen=True)
class CategoryBasedPolicy:
    """Loan length looked up by equipment category.

    Categories without a rule fall back to ``default_days``; an unknown
    category is not an error.
    """

    rules: Mapping[str, int] = field(default_factory=dict)
    default_days: int = DEFAULT_LOAN_DAYS

    def __post_init__(self) -> None:
        for category, days in self.rules.items():
            if days < 0:
                raise ValueError(f"Negative loan length for category {category!r}")

    def days_for(self, category: str) -> int:
        return self.rules.get(category, self.default_days)

    def calculate(self, start_date: date, equipment: Equipment) -> date:
        return start_date + timedelta(days=self.days_for(equipment.category))


def build_due_date_policy(settings: LoanSettings) -> DueDatePolicy:
    if settings.due_policy == "category":
        return CategoryBasedPolicy(dict(settings.category_days), settings.loan_days)
    return FixedDaysPolicy(settings.loan_days)


# --------------------------------------------------------------------------- fines


def days_late(loan: Loan, now: datetime) -> int:
    """Whole days (rounded up) that ``now`` lies past the loan's due instant."""
    elapsed = as_utc(now) - loan.due_at
    if elapsed <= timedelta(0):
        return 0
    return math.ceil(elapsed / timedelta(days=1))


@dataclass(frozen=True)
class PerDayFinePolicy:
    """Charges ``cents_per_day`` for each whole day late past the grace period.

    The amount is computed once, when the sweep first sees the loan overdue
    and issues the single fine for that episode. It does not grow afterwards:
    with a daily sweep that is usually one day's rate, however late the item
    comes back. ``cap_cents`` bounds the result.
    """

    cents_per_day: int = 100
    grace_days: int = 0
    cap_cents: Optional[int] = None

    def compute(self, loan: Loan, now: datetime) -> int:
        chargeable = days_late(loan, now) - self.grace_days
        if chargeable <= 0:
            return 0
        amount = chargeable * self.cents_per_day
        if self.cap_cents is not None:
            amount = min(amount, self.cap_cents)
        return amount


@dataclass(frozen=True)
class FlatFinePolicy:
    amount_cents: int = 500
    grace_days: int = 0

    def compute(self, loan: Loan, now: datetime) -> int:
        if days_late(loan, now) <= self.grace_days:
            return 0
        return self.amount_cents


def build_fine_policy(settings: LoanSettings) -> FinePolicy:
    if settings.fine_policy == "flat":
        return FlatFinePolicy(settings.fine_flat_cents, settings.fine_grace_days)
    return PerDayFinePolicy(
        settings.fine_cents_per_day,
        settings.fine_grace_days,
        settings.fine_cap_cents,
    )


__all__ = [
    "DueDatePolicy",
    "FinePolicy",
    "FixedDaysPolicy",
    "CategoryBasedPolicy",
    "PerDayFinePolicy",
    "FlatFinePolicy",
    "build_due_date_policy",
    "build_fine_policy",
    "days_late",
]
