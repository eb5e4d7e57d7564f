"""Fine payment."""

from __future__ import annotations

import logging
import uuid

from notifications.services.notifier import Notifier
from utils.clock import Clock
from utils.locks import LockRegistry

from ..exceptions import InvalidStateError, PaymentError, ValidationError
from ..models import Fine, FineStatus, Receipt
from ..payments import (
    ChargeRequest,
    PaymentDeclined,
    PaymentGateway,
    PaymentGatewayError,
    new_idempotency_key,
)
from ..repository import LoanStores
from ..validators import validate_fine_transition
from . import messages

logger = logging.getLogger(__name__)


class FineSettlementService:
    def __init__(
        self,
        stores: LoanStores,
        clock: Clock,
        gateway: PaymentGateway,
        notifier: Notifier,
        locks: LockRegistry,
        currency: str = "EUR",
    ) -> None:
        self.stores = stores
        self.clock = clock
        self.gateway = gateway
        self.notifier = notifier
        self.locks = locks
        self.currency = currency

    def pay_fine(self, fine_id: str, card_token: str) -> Fine:
        """Charge the fine and record it as Paid with its receipt.

        Any charge failure raises :class:`PaymentError` and leaves the fine
        Unpaid. Every attempt uses a new idempotency key.
        """
        self.stores.fines.get(fine_id)
        if not card_token or not card_token.strip():
            raise ValidationError("card_token is required")

        with self.locks.fine.hold(fine_id):
            fine = self.stores.fines.get(fine_id)
            if fine.is_paid:
                raise InvalidStateError(f"Fine {fine_id} is already paid", current=fine.status)
            validate_fine_transition(fine.status, FineStatus.PAID)

            charge = ChargeRequest(
                amount_cents=fine.amount_cents,
                currency=self.currency,
                card_token=card_token.strip(),
                idempotency_key=new_idempotency_key(),
            )
            try:
                result = self.gateway.charge(charge)
            except PaymentDeclined as exc:
                logger.info("[payments] fine %s declined: %s", fine_id, exc)
                raise PaymentError(f"Payment for fine {fine_id} was declined", declined=True) from exc
            except (PaymentGatewayError, TimeoutError) as exc:
                logger.warning("[payments] fine %s charge failed: %s", fine_id, exc)
                raise PaymentError(f"Payment for fine {fine_id} failed: {exc}") from exc

            paid_at = self.clock.now()
            with self.stores.transaction():
                paid = self.stores.fines.mark_paid(fine_id, result.reference, paid_at)
                self.stores.receipts.add(
                    Receipt(
                        id=uuid.uuid4().hex,
                        fine_id=fine_id,
                        reference=result.reference,
                        amount_cents=fine.amount_cents,
                        currency=self.currency,
                        paid_at=paid_at,
                    )
                )

        logger.info("[payments] fine %s paid (%s)", fine_id, result.reference)
        loan = self.stores.loans.get(paid.loan_id)
        requester = self.stores.people.get(loan.requester_id)
        self.notifier.notify(messages.fine_paid(requester, paid, self.currency, paid_at))
        return paid


__all__ = ["FineSettlementService"]
