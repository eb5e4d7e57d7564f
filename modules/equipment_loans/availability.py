"""Date-range availability of a single piece of equipment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .models import EquipmentStatus, LoanStatus, RequestStatus
from .models.enums import BLOCKING_REQUEST_STATUSES
from .repository import LoanStores

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DateRange:
    """Half-open range ``[start, end)``; the end day itself is free."""

    start: date
    end: date

    def overlaps(self, other: "DateRange") -> bool:
        return ranges_overlap(self.start, self.end, other.start, other.end)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start < b_end and b_start < a_end


class AvailabilityService:
    def __init__(self, stores: LoanStores) -> None:
        self.stores = stores

    def is_available(
        self,
        equipment_id: str,
        candidate: DateRange,
        *,
        exclude_request_id: Optional[str] = None,
    ) -> bool:
        """True iff nothing holds ``equipment_id`` during ``candidate``.

        Raises :class:`NotFoundError` for unknown equipment.
        """
        equipment = self.stores.equipment.get(equipment_id)
        if equipment.status is EquipmentStatus.LOANED:
            logger.debug("[availability] %s is loaned", equipment_id)
            return False

        loans = self.stores.loans.list_for_equipment(equipment_id)
        if any(loan.is_open for loan in loans):
            logger.debug("[availability] %s has an open loan", equipment_id)
            return False
        closed_loans = {loan.id for loan in loans if loan.status is LoanStatus.CLOSED}

        for request in self.stores.requests.list_for_equipment(equipment_id):
            if request.id == exclude_request_id:
                continue
            if request.status not in BLOCKING_REQUEST_STATUSES:
                continue
            if request.status is RequestStatus.APPROVED and request.loan_id in closed_loans:
                continue
            if candidate.overlaps(DateRange(request.start_date, request.end_date)):
                logger.debug(
                    "[availability] %s overlaps request %s", equipment_id, request.id
                )
                return False
        return True


__all__ = ["DateRange", "ranges_overlap", "AvailabilityService"]
