"""Pydantic schemas for the equipment loan REST payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import (
    EquipmentStatus,
    FineStatus,
    LoanStatus,
    PersonRole,
    RequestStatus,
    ReviewDecision,
)


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("Field is required")
    return value.strip()


class PersonCreate(BaseModel):
    name: str
    email: str
    role: PersonRole

    @field_validator("name", "email")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class PersonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: PersonRole


class EquipmentCreate(BaseModel):
    name: str
    category: str

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class EquipmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str
    status: EquipmentStatus


class LoanRequestCreate(BaseModel):
    equipment_id: str
    requester_id: str
    start_date: date
    end_date: date


class LoanRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    equipment_id: str
    start_date: date
    end_date: date
    status: RequestStatus
    created_at: datetime
    reviewed_at: Optional[datetime]
    reviewer_id: Optional[str]
    loan_id: Optional[str]


class ReviewCreate(BaseModel):
    decision: ReviewDecision
    reviewer_id: Optional[str] = None


class LoanRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    equipment_id: str
    request_id: Optional[str]
    start_date: date
    due_date: date
    status: LoanStatus
    created_at: datetime
    returned_at: Optional[datetime]


class ReviewRead(BaseModel):
    request: LoanRequestRead
    loan: Optional[LoanRead] = None


class FineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    loan_id: str
    amount_cents: int = Field(ge=0)
    status: FineStatus
    created_at: datetime
    paid_at: Optional[datetime]
    receipt_ref: Optional[str]


class PaymentCreate(BaseModel):
    card_token: str

    @field_validator("card_token")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class SweepCreate(BaseModel):
    now: Optional[datetime] = None


class SweepRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    now: datetime
    scanned: int
    newly_overdue: List[str]
    fines_created: List[str]
