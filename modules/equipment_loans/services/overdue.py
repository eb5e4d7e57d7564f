"""Daily overdue detection and fine issuing."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from notifications.services.notifier import Notifier
from utils.clock import Clock, as_utc
from utils.locks import LockRegistry

from ..models import Fine, LoanStatus
from ..policies import FinePolicy
from ..repository import LoanStores
from . import messages
from .lifecycle import LoanLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    now: datetime
    scanned: int = 0
    newly_overdue: List[str] = field(default_factory=list)
    fines_created: List[str] = field(default_factory=list)


class OverdueSweep:
    """Marks late loans Overdue and issues one fine per overdue episode.

    An episode lasts until the loan is returned, so a loan never carries more
    than one fine. A policy amount of zero (grace period) issues nothing and
    the next run tries again.
    """

    def __init__(
        self,
        stores: LoanStores,
        clock: Clock,
        fine_policy: FinePolicy,
        lifecycle: LoanLifecycleManager,
        notifier: Notifier,
        locks: LockRegistry,
        currency: str = "EUR",
    ) -> None:
        self.stores = stores
        self.clock = clock
        self.fine_policy = fine_policy
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.locks = locks
        self.currency = currency

    def run_daily_check(self, now: Optional[datetime] = None) -> SweepReport:
        """Scan active loans once at ``now``.

        Each fine is announced right after its own transaction commits, so a
        failure on a later loan never hides fines already issued in this run.
        """
        now = as_utc(now) if now is not None else self.clock.now()
        report = SweepReport(now=now)

        for candidate in self.stores.loans.list_active():
            report.scanned += 1
            with self.locks.loan.hold(candidate.id):
                fine = self._check_loan(candidate.id, now, report)
            if fine is not None:
                loan = self.stores.loans.get(fine.loan_id)
                requester = self.stores.people.get(loan.requester_id)
                self.notifier.notify(messages.fine_created(requester, loan, fine, self.currency, now))

        logger.info(
            "[sweep] %s: scanned=%d overdue=%d fines=%d",
            now.isoformat(),
            report.scanned,
            len(report.newly_overdue),
            len(report.fines_created),
        )
        return report

    def _check_loan(self, loan_id: str, now: datetime, report: SweepReport) -> Optional[Fine]:
        loan = self.stores.loans.get(loan_id)
        if not loan.is_overdue(now):
            return None
        with self.stores.transaction():
            if loan.status is LoanStatus.ACTIVE:
                loan = self.lifecycle.mark_overdue(loan)
                report.newly_overdue.append(loan.id)
            if self.stores.fines.find_by_loan(loan.id):
                return None
            amount = self.fine_policy.compute(loan, now)
            if amount <= 0:
                logger.debug("[sweep] loan %s overdue but inside grace", loan.id)
                return None
            fine = self.stores.fines.add(
                Fine(id=uuid.uuid4().hex, loan_id=loan.id, amount_cents=amount, created_at=now)
            )
        report.fines_created.append(fine.id)
        return fine


__all__ = ["SweepReport", "OverdueSweep"]
