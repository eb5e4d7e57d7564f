"""Validation helpers for the equipment loan services."""

from __future__ import annotations

from datetime import date, datetime

from utils.clock import as_utc

from .exceptions import InvalidStateError, ValidationError
from .models.enums import (
    ALLOWED_FINE_TRANSITIONS,
    ALLOWED_LOAN_TRANSITIONS,
    ALLOWED_REQUEST_TRANSITIONS,
    FineStatus,
    LoanStatus,
    RequestStatus,
    ReviewDecision,
)


def _normalise(value: object) -> str:
    if isinstance(value, ReviewDecision):
        return value.value
    if isinstance(value, str):
        return value.strip().capitalize()
    raise ValidationError(f"Unsupported decision value: {value!r}")


def validate_decision(value: object) -> ReviewDecision:
    try:
        return ReviewDecision(_normalise(value))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def coerce_date(value: object, field_name: str) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"{field_name} is not an ISO date: {value!r}") from exc
    raise ValidationError(f"{field_name} must be a date")


def validate_range(start: date, end: date, today: date) -> None:
    if start >= end:
        raise ValidationError(f"start_date {start} must be before end_date {end}")
    if start < today:
        raise ValidationError(f"start_date {start} is in the past")


def _check(current, target, table, kind: str) -> None:
    if target not in table.get(current, set()):
        raise InvalidStateError(
            f"Illegal {kind} transition: {current.value} -> {target.value}", current=current
        )


def validate_request_transition(current: RequestStatus, target: RequestStatus) -> None:
    _check(current, target, ALLOWED_REQUEST_TRANSITIONS, "request")


def validate_loan_transition(current: LoanStatus, target: LoanStatus) -> None:
    _check(current, target, ALLOWED_LOAN_TRANSITIONS, "loan")


def validate_fine_transition(current: FineStatus, target: FineStatus) -> None:
    _check(current, target, ALLOWED_FINE_TRANSITIONS, "fine")


__all__ = [
    "validate_decision",
    "coerce_date",
    "validate_range",
    "validate_request_transition",
    "validate_loan_transition",
    "validate_fine_transition",
]
