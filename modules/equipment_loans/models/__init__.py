"""Domain records for the equipment loan module."""

from .enums import (
    EquipmentStatus,
    FineStatus,
    LoanStatus,
    PersonRole,
    RequestStatus,
    ReviewDecision,
)
from .equipment import Equipment
from .fine import Fine, Receipt
from .loan import Loan
from .loan_request import LoanRequest
from .person import Person

__all__ = [
    "EquipmentStatus",
    "FineStatus",
    "LoanStatus",
    "PersonRole",
    "RequestStatus",
    "ReviewDecision",
    "Equipment",
    "Fine",
    "Receipt",
    "Loan",
    "LoanRequest",
    "Person",
]
