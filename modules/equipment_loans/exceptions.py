"""Custom exceptions for the equipment loan services."""
from __future__ import annotations


class LoanError(RuntimeError):
    """Base exception for loan lifecycle operations."""


class ValidationError(LoanError):
    """Raised when input is malformed (for example ``start >= end``)."""


class NotFoundError(LoanError):
    """Raised when an id does not resolve to a stored record."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"Unknown {entity}: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(LoanError):
    """Raised when an operation is not permitted from the current status."""

    def __init__(self, message: str, current: object = None) -> None:
        super().__init__(message)
        self.current = current


class AvailabilityError(LoanError):
    """Raised when equipment is not free for the requested range."""


class PaymentError(LoanError):
    """Raised when a fine charge is declined, fails or times out.

    The fine stays ``Unpaid``; retrying with a fresh idempotency key is safe.
    """

    def __init__(self, message: str, *, declined: bool = False) -> None:
        super().__init__(message)
        self.declined = declined


class PermissionDenied(LoanError):
    """Raised when a person acts outside the capabilities of their role."""


__all__ = [
    "LoanError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "AvailabilityError",
    "PaymentError",
    "PermissionDenied",
]
