"""Notifications sent by the loan services."""

from __future__ import annotations

from datetime import datetime
from typing import List

from notifications.models.notification import Notification

from ..models import Fine, Loan, LoanRequest, Person


def _money(amount_cents: int, currency: str) -> str:
    return f"{amount_cents // 100}.{amount_cents % 100:02d} {currency}"


def request_submitted(
    approvers: List[Person], request: LoanRequest, equipment_name: str, created_at: datetime
) -> List[Notification]:
    message = (
        f"Loan request {request.id} for {equipment_name} "
        f"({request.start_date} to {request.end_date}) is waiting for review."
    )
    return [
        Notification(
            recipient=approver.email,
            title="Loan request submitted",
            message=message,
            entity_type="loan_request",
            entity_id=request.id,
            created_at=created_at,
        )
        for approver in approvers
    ]


def request_reviewed(
    requester: Person, request: LoanRequest, loan: Loan | None, created_at: datetime
) -> Notification:
    if loan is not None:
        message = f"Your loan request {request.id} was approved. Please return the item by {loan.due_date}."
        severity = "success"
    else:
        message = f"Your loan request {request.id} was rejected."
        severity = "warning"
    return Notification(
        recipient=requester.email,
        title=f"Loan request {request.status.value.lower()}",
        message=message,
        severity=severity,
        entity_type="loan_request",
        entity_id=request.id,
        created_at=created_at,
    )


def loan_returned(requester: Person, loan: Loan, created_at: datetime) -> Notification:
    return Notification(
        recipient=requester.email,
        title="Loan returned",
        message=f"Loan {loan.id} was closed at {loan.returned_at:%Y-%m-%d %H:%M} UTC.",
        entity_type="loan",
        entity_id=loan.id,
        created_at=created_at,
    )


def fine_created(
    requester: Person, loan: Loan, fine: Fine, currency: str, created_at: datetime
) -> Notification:
    return Notification(
        recipient=requester.email,
        title="Overdue fine",
        message=(
            f"Loan {loan.id} was due on {loan.due_date}. "
            f"A fine of {_money(fine.amount_cents, currency)} has been issued."
        ),
        severity="warning",
        entity_type="fine",
        entity_id=fine.id,
        created_at=created_at,
    )


def fine_paid(requester: Person, fine: Fine, currency: str, created_at: datetime) -> Notification:
    return Notification(
        recipient=requester.email,
        title="Payment received",
        message=(
            f"Fine {fine.id} of {_money(fine.amount_cents, currency)} is paid. "
            f"Receipt {fine.receipt_ref}."
        ),
        severity="success",
        entity_type="fine",
        entity_id=fine.id,
        created_at=created_at,
    )
