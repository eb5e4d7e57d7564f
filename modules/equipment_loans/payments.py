"""Payment collaborator used to settle fines.

The real gateway lives outside this package; it only has to honour
:class:`PaymentGateway`. ``SandboxPaymentGateway`` stands in for it in tests
and demos. Without a configured gateway every charge fails.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Protocol

from utils.app_settings import LoanSettings

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    """The charge failed for a technical reason; its outcome is unknown."""


class PaymentDeclined(PaymentGatewayError):
    """The card issuer refused the charge."""


@dataclass(frozen=True, slots=True)
class ChargeRequest:
    amount_cents: int
    currency: str
    card_token: str
    idempotency_key: str


@dataclass(frozen=True, slots=True)
class ChargeResult:
    reference: str


class PaymentGateway(Protocol):
    def charge(self, request: ChargeRequest) -> ChargeResult:
        ...


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


class SandboxPaymentGateway:
    """Deterministic in-process gateway.

    Tokens starting with ``tok_decline`` are declined, ``tok_error`` raises
    :class:`PaymentGatewayError` and ``tok_timeout`` raises
    :class:`TimeoutError`. Anything else succeeds. Replaying an idempotency
    key returns the original reference without charging twice.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_key: Dict[str, ChargeResult] = {}
        self.charges: List[ChargeRequest] = []

    def charge(self, request: ChargeRequest) -> ChargeResult:
        token = request.card_token
        if token.startswith("tok_decline"):
            raise PaymentDeclined(f"Card declined for {request.amount_cents} {request.currency}")
        if token.startswith("tok_error"):
            raise PaymentGatewayError("Gateway unavailable")
        if token.startswith("tok_timeout"):
            raise TimeoutError("Gateway did not answer in time")
        with self._lock:
            existing = self._by_key.get(request.idempotency_key)
            if existing is not None:
                return existing
            result = ChargeResult(reference=f"ch_{uuid.uuid4().hex[:16]}")
            self._by_key[request.idempotency_key] = result
            self.charges.append(request)
        logger.debug("[payments] charged %s %s -> %s", request.amount_cents, request.currency, result.reference)
        return result


class DisabledPaymentGateway:
    """Placeholder used until a gateway is configured. Every charge fails."""

    def charge(self, request: ChargeRequest) -> ChargeResult:
        raise PaymentGatewayError("No payment gateway is configured")


def build_payment_gateway(settings: LoanSettings) -> PaymentGateway:
    if settings.payment_gateway == "sandbox":
        logger.warning("[payments] sandbox gateway in use; fines are not really charged")
        return SandboxPaymentGateway()
    return DisabledPaymentGateway()


__all__ = [
    "PaymentGatewayError",
    "PaymentDeclined",
    "ChargeRequest",
    "ChargeResult",
    "PaymentGateway",
    "SandboxPaymentGateway",
    "DisabledPaymentGateway",
    "build_payment_gateway",
    "new_idempotency_key",
]
