"""Enumerations used throughout the equipment loan module."""

from __future__ import annotations

from enum import Enum
from typing import Set


class _StrEnum(str, Enum):
    """Enum subclass that compares/serialises as its value."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return str(self.value)

    @classmethod
    def values(cls) -> Set[str]:
        return {member.value for member in cls}

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls.values()


class PersonRole(_StrEnum):
    REQUESTER = "Requester"
    APPROVER = "Approver"


class EquipmentStatus(_StrEnum):
    AVAILABLE = "Available"
    RESERVED = "Reserved"
    LOANED = "Loaned"


class RequestStatus(_StrEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class LoanStatus(_StrEnum):
    ACTIVE = "Active"
    OVERDUE = "Overdue"
    CLOSED = "Closed"


class FineStatus(_StrEnum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class ReviewDecision(_StrEnum):
    APPROVE = "Approve"
    REJECT = "Reject"


ALLOWED_REQUEST_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED},
    RequestStatus.APPROVED: set(),
    RequestStatus.REJECTED: set(),
}

ALLOWED_LOAN_TRANSITIONS = {
    LoanStatus.ACTIVE: {LoanStatus.OVERDUE, LoanStatus.CLOSED},
    LoanStatus.OVERDUE: {LoanStatus.CLOSED},
    LoanStatus.CLOSED: set(),
}

ALLOWED_FINE_TRANSITIONS = {
    FineStatus.UNPAID: {FineStatus.PAID},
    FineStatus.PAID: set(),
}

# Loans that still hold the physical item
OPEN_LOAN_STATUSES = {LoanStatus.ACTIVE, LoanStatus.OVERDUE}

# Requests that occupy their date range on the equipment calendar
BLOCKING_REQUEST_STATUSES = {RequestStatus.PENDING, RequestStatus.APPROVED}
