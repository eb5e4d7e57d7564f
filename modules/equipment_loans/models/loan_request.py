"""Loan request dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional

from .enums import RequestStatus
from .fields import to_date, to_instant


@dataclass(slots=True)
class LoanRequest:
    id: str
    requester_id: str
    equipment_id: str
    start_date: date
    end_date: date
    created_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    reviewed_at: Optional[datetime] = None
    reviewer_id: Optional[str] = None
    loan_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.PENDING

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "equipment_id": self.equipment_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "status": self.status.value,
            "created_at": self.created_at,
            "reviewed_at": self.reviewed_at,
            "reviewer_id": self.reviewer_id,
            "loan_id": self.loan_id,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "LoanRequest":
        return cls(
            id=row["id"],
            requester_id=row["requester_id"],
            equipment_id=row["equipment_id"],
            start_date=to_date(row["start_date"]),
            end_date=to_date(row["end_date"]),
            status=RequestStatus(row["status"]),
            created_at=to_instant(row["created_at"]),
            reviewed_at=to_instant(row.get("reviewed_at")),
            reviewer_id=row.get("reviewer_id"),
            loan_id=row.get("loan_id"),
        )
