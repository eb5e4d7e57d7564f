"""Loan dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional

from utils.clock import as_utc, start_of_day

from .enums import OPEN_LOAN_STATUSES, LoanStatus
from .fields import to_date, to_instant


@dataclass(slots=True)
class Loan:
    """An item out with a requester.

    ``due_date`` is fixed when the loan is created; afterwards only
    ``status`` and ``returned_at`` change.
    """

    id: str
    requester_id: str
    equipment_id: str
    start_date: date
    due_date: date
    created_at: datetime
    status: LoanStatus = LoanStatus.ACTIVE
    request_id: Optional[str] = None
    returned_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_LOAN_STATUSES and self.returned_at is None

    @property
    def due_at(self) -> datetime:
        """The due date as an instant (00:00 UTC on ``due_date``)."""
        return start_of_day(self.due_date)

    def is_overdue(self, now: datetime) -> bool:
        return self.is_open and as_utc(now) > self.due_at

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "equipment_id": self.equipment_id,
            "request_id": self.request_id,
            "start_date": self.start_date,
            "due_date": self.due_date,
            "status": self.status.value,
            "created_at": self.created_at,
            "returned_at": self.returned_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "Loan":
        return cls(
            id=row["id"],
            requester_id=row["requester_id"],
            equipment_id=row["equipment_id"],
            request_id=row.get("request_id"),
            start_date=to_date(row["start_date"]),
            due_date=to_date(row["due_date"]),
            status=LoanStatus(row["status"]),
            created_at=to_instant(row["created_at"]),
            returned_at=to_instant(row.get("returned_at")),
        )
