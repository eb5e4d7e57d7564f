"""Fine and receipt dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from .enums import FineStatus
from .fields import to_instant


@dataclass(slots=True)
class Fine:
    """Penalty for an overdue loan, in integer minor units (cents)."""

    id: str
    loan_id: str
    amount_cents: int
    created_at: datetime
    status: FineStatus = FineStatus.UNPAID
    paid_at: Optional[datetime] = None
    receipt_ref: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.amount_cents, bool) or not isinstance(self.amount_cents, int):
            raise TypeError("amount_cents must be an integer number of cents")
        if self.amount_cents < 0:
            raise ValueError("amount_cents must not be negative")

    @property
    def is_paid(self) -> bool:
        return self.status is FineStatus.PAID

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "loan_id": self.loan_id,
            "amount_cents": self.amount_cents,
            "status": self.status.value,
            "created_at": self.created_at,
            "paid_at": self.paid_at,
            "receipt_ref": self.receipt_ref,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "Fine":
        return cls(
            id=row["id"],
            loan_id=row["loan_id"],
            amount_cents=int(row["amount_cents"]),
            status=FineStatus(row["status"]),
            created_at=to_instant(row["created_at"]),
            paid_at=to_instant(row.get("paid_at")),
            receipt_ref=row.get("receipt_ref"),
        )


@dataclass(slots=True)
class Receipt:
    id: str
    fine_id: str
    reference: str
    amount_cents: int
    currency: str
    paid_at: datetime

    def to_row(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "fine_id": self.fine_id,
            "reference": self.reference,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "paid_at": self.paid_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "Receipt":
        return cls(
            id=row["id"],
            fine_id=row["fine_id"],
            reference=row["reference"],
            amount_cents=int(row["amount_cents"]),
            currency=row["currency"],
            paid_at=to_instant(row["paid_at"]),
        )
