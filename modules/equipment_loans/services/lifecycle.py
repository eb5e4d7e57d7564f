"""Loan lifecycle: the only code that moves equipment, requests and loans
between states.

Methods that change more than one record run inside
``stores.transaction()`` and either apply every change or none.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from notifications.services.notifier import Notifier
from utils.clock import Clock
from utils.locks import LockRegistry

from ..exceptions import AvailabilityError, InvalidStateError
from ..models import (
    Equipment,
    EquipmentStatus,
    Loan,
    LoanRequest,
    LoanStatus,
    RequestStatus,
)
from ..policies import DueDatePolicy
from ..repository import LoanStores
from ..validators import validate_loan_transition, validate_request_transition
from . import messages

logger = logging.getLogger(__name__)


class LoanLifecycleManager:
    def __init__(
        self,
        stores: LoanStores,
        clock: Clock,
        due_policy: DueDatePolicy,
        notifier: Notifier,
        locks: LockRegistry,
    ) -> None:
        self.stores = stores
        self.clock = clock
        self.due_policy = due_policy
        self.notifier = notifier
        self.locks = locks

    def _generate_id(self) -> str:
        return uuid.uuid4().hex

    def _has_pending(self, equipment_id: str, exclude: Optional[str] = None) -> bool:
        return any(
            r.is_pending and r.id != exclude
            for r in self.stores.requests.list_for_equipment(equipment_id)
        )

    # ------------------------------------------------------------------ equipment
    def reserve_equipment(self, equipment_id: str) -> Equipment:
        """Mark available equipment as Reserved; other statuses are left alone."""
        equipment = self.stores.equipment.get(equipment_id)
        if equipment.status is EquipmentStatus.AVAILABLE:
            equipment = self.stores.equipment.update_status(
                equipment_id, EquipmentStatus.RESERVED, expected=EquipmentStatus.AVAILABLE
            )
        return equipment

    def release_reservation(self, equipment_id: str) -> Equipment:
        """Put Reserved equipment back to Available once no request is pending."""
        equipment = self.stores.equipment.get(equipment_id)
        if equipment.status is EquipmentStatus.RESERVED and not self._has_pending(equipment_id):
            equipment = self.stores.equipment.update_status(
                equipment_id, EquipmentStatus.AVAILABLE, expected=EquipmentStatus.RESERVED
            )
        return equipment

    # ------------------------------------------------------------------ requests
    def approve_request(
        self, request: LoanRequest, loan_id: str, reviewer_id: Optional[str] = None
    ) -> LoanRequest:
        validate_request_transition(request.status, RequestStatus.APPROVED)
        return self.stores.requests.update_status(
            request.id,
            RequestStatus.APPROVED,
            expected=RequestStatus.PENDING,
            reviewed_at=self.clock.now(),
            reviewer_id=reviewer_id,
            loan_id=loan_id,
        )

    def reject_request(self, request: LoanRequest, reviewer_id: Optional[str] = None) -> LoanRequest:
        validate_request_transition(request.status, RequestStatus.REJECTED)
        with self.stores.transaction():
            rejected = self.stores.requests.update_status(
                request.id,
                RequestStatus.REJECTED,
                expected=RequestStatus.PENDING,
                reviewed_at=self.clock.now(),
                reviewer_id=reviewer_id,
            )
            self.release_reservation(request.equipment_id)
        logger.info("[loans] request %s rejected", request.id)
        return rejected

    # ------------------------------------------------------------------ loans
    def create_loan_from_request(
        self, request: LoanRequest, reviewer_id: Optional[str] = None
    ) -> tuple[LoanRequest, Loan]:
        """Approve ``request`` and open its loan as one unit.

        The caller holds the equipment lock and has already checked
        availability for the request's range.
        """
        equipment = self.stores.equipment.get(request.equipment_id)
        if equipment.status is EquipmentStatus.LOANED:
            raise AvailabilityError(f"Equipment {equipment.id} is already on loan")

        loan = Loan(
            id=self._generate_id(),
            requester_id=request.requester_id,
            equipment_id=equipment.id,
            request_id=request.id,
            start_date=request.start_date,
            due_date=self.due_policy.calculate(request.start_date, equipment),
            created_at=self.clock.now(),
        )
        with self.stores.transaction():
            approved = self.approve_request(request, loan.id, reviewer_id)
            self.stores.loans.add(loan)
            self.stores.equipment.update_status(
                equipment.id, EquipmentStatus.LOANED, expected=equipment.status
            )
        logger.info(
            "[loans] request %s approved, loan %s due %s", request.id, loan.id, loan.due_date
        )
        return approved, loan

    def return_loan(self, loan_id: str) -> Loan:
        """Close an open loan and free its equipment.

        A second return of the same loan raises :class:`InvalidStateError`
        and changes nothing.
        """
        equipment_id = self.stores.loans.get(loan_id).equipment_id
        with self.locks.equipment.hold(equipment_id), self.locks.loan.hold(loan_id):
            loan = self.stores.loans.get(loan_id)
            if loan.status is LoanStatus.CLOSED:
                raise InvalidStateError(f"Loan {loan_id} has already been returned", current=loan.status)
            validate_loan_transition(loan.status, LoanStatus.CLOSED)

            next_status = (
                EquipmentStatus.RESERVED if self._has_pending(equipment_id) else EquipmentStatus.AVAILABLE
            )
            with self.stores.transaction():
                closed = self.stores.loans.close(loan_id, self.clock.now())
                self.stores.equipment.update_status(
                    equipment_id, next_status, expected=EquipmentStatus.LOANED
                )
        logger.info("[loans] loan %s returned, equipment %s now %s", loan_id, equipment_id, next_status)
        requester = self.stores.people.get(closed.requester_id)
        self.notifier.notify(messages.loan_returned(requester, closed, closed.returned_at))
        return closed

    def mark_overdue(self, loan: Loan) -> Loan:
        validate_loan_transition(loan.status, LoanStatus.OVERDUE)
        return self.stores.loans.update_status(loan.id, LoanStatus.OVERDUE, expected=LoanStatus.ACTIVE)


__all__ = ["LoanLifecycleManager"]
