"""Submission and review of loan requests."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from notifications.services.notifier import Notifier
from utils.clock import Clock, utc_date
from utils.locks import LockRegistry

from ..availability import AvailabilityService, DateRange
from ..exceptions import AvailabilityError, InvalidStateError, PermissionDenied
from ..models import Loan, LoanRequest, Person, ReviewDecision
from ..repository import LoanStores
from ..validators import coerce_date, validate_decision, validate_range
from . import messages
from .lifecycle import LoanLifecycleManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReviewOutcome:
    request: LoanRequest
    loan: Optional[Loan] = None


class RequestReviewService:
    def __init__(
        self,
        stores: LoanStores,
        clock: Clock,
        availability: AvailabilityService,
        lifecycle: LoanLifecycleManager,
        notifier: Notifier,
        locks: LockRegistry,
    ) -> None:
        self.stores = stores
        self.clock = clock
        self.availability = availability
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.locks = locks

    def _requester(self, requester_id: str) -> Person:
        person = self.stores.people.get(requester_id)
        if not person.can_request:
            raise PermissionDenied(f"{person.name} is not allowed to request equipment")
        return person

    def _reviewer(self, reviewer_id: Optional[str]) -> Optional[Person]:
        if reviewer_id is None:
            return None
        person = self.stores.people.get(reviewer_id)
        if not person.can_approve:
            raise PermissionDenied(f"{person.name} is not allowed to review loan requests")
        return person

    def submit_request(self, equipment_id: str, requester_id: str, start: object, end: object) -> str:
        """Create a Pending request for ``[start, end)`` and return its id.

        Raises ValidationError for a bad range, NotFoundError for unknown ids,
        PermissionDenied for a non-requester and AvailabilityError when the
        equipment is taken for any part of the range.
        """
        start_date = coerce_date(start, "start_date")
        end_date = coerce_date(end, "end_date")
        now = self.clock.now()
        validate_range(start_date, end_date, utc_date(now))
        self._requester(requester_id)
        equipment = self.stores.equipment.get(equipment_id)
        candidate = DateRange(start_date, end_date)

        with self.locks.equipment.hold(equipment_id):
            if not self.availability.is_available(equipment_id, candidate):
                logger.info(
                    "[loans] %s unavailable for %s..%s", equipment_id, start_date, end_date
                )
                raise AvailabilityError(
                    f"Equipment {equipment_id} is not available from {start_date} to {end_date}"
                )
            request = LoanRequest(
                id=uuid.uuid4().hex,
                requester_id=requester_id,
                equipment_id=equipment_id,
                start_date=start_date,
                end_date=end_date,
                created_at=now,
            )
            with self.stores.transaction():
                self.stores.requests.add(request)
                self.lifecycle.reserve_equipment(equipment_id)

        logger.info("[loans] request %s submitted for %s", request.id, equipment_id)
        approvers = [p for p in self.stores.people.list() if p.can_approve]
        for note in messages.request_submitted(approvers, request, equipment.name, now):
            self.notifier.notify(note)
        return request.id

    def review_request(
        self, request_id: str, decision: object, reviewer_id: Optional[str] = None
    ) -> ReviewOutcome:
        decision = validate_decision(decision)
        equipment_id = self.stores.requests.get(request_id).equipment_id

        with self.locks.equipment.hold(equipment_id):
            request = self.stores.requests.get(request_id)
            if not request.is_pending:
                raise InvalidStateError(
                    f"Loan request {request_id} was already {request.status.value.lower()}",
                    current=request.status,
                )
            self._reviewer(reviewer_id)

            if decision is ReviewDecision.REJECT:
                outcome = ReviewOutcome(self.lifecycle.reject_request(request, reviewer_id))
            else:
                candidate = DateRange(request.start_date, request.end_date)
                if not self.availability.is_available(
                    equipment_id, candidate, exclude_request_id=request.id
                ):
                    raise AvailabilityError(
                        f"Equipment {equipment_id} is no longer available for request {request_id}"
                    )
                approved, loan = self.lifecycle.create_loan_from_request(request, reviewer_id)
                outcome = ReviewOutcome(approved, loan)

        requester = self.stores.people.get(request.requester_id)
        note = messages.request_reviewed(
            requester, outcome.request, outcome.loan, outcome.request.reviewed_at or self.clock.now()
        )
        self.notifier.notify(note)
        return outcome


__all__ = ["ReviewOutcome", "RequestReviewService"]
