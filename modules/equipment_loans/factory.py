"""Assembles the loan services from settings."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from notifications.services.mailers import LogMailer, Mailer
from notifications.services.notifier import Notifier
from utils.app_settings import LoanSettings, load_settings
from utils.clock import Clock, SystemClock
from utils.locks import LockRegistry

from .availability import AvailabilityService
from .payments import PaymentGateway, build_payment_gateway
from .policies import build_due_date_policy, build_fine_policy
from .repository import LoanStores, build_stores
from .services import (
    FineSettlementService,
    LoanLifecycleManager,
    OverdueSweep,
    RegistryService,
    RequestReviewService,
)

logger = logging.getLogger(__name__)


@dataclass
class LoanSystem:
    settings: LoanSettings
    stores: LoanStores
    clock: Clock
    notifier: Notifier
    gateway: PaymentGateway
    locks: LockRegistry
    availability: AvailabilityService
    lifecycle: LoanLifecycleManager
    review: RequestReviewService
    sweep: OverdueSweep
    settlement: FineSettlementService
    registry: RegistryService


def build_system(
    settings: Optional[LoanSettings] = None,
    *,
    clock: Optional[Clock] = None,
    mailer: Optional[Mailer] = None,
    gateway: Optional[PaymentGateway] = None,
    stores: Optional[LoanStores] = None,
) -> LoanSystem:
    settings = settings or load_settings()
    clock = clock or SystemClock()
    stores = stores or build_stores(settings)
    notifier = Notifier(mailer or LogMailer())
    gateway = gateway or build_payment_gateway(settings)
    locks = LockRegistry()

    availability = AvailabilityService(stores)
    lifecycle = LoanLifecycleManager(
        stores, clock, build_due_date_policy(settings), notifier, locks
    )
    review = RequestReviewService(stores, clock, availability, lifecycle, notifier, locks)
    sweep = OverdueSweep(
        stores,
        clock,
        build_fine_policy(settings),
        lifecycle,
        notifier,
        locks,
        currency=settings.currency,
    )
    settlement = FineSettlementService(
        stores, clock, gateway, notifier, locks, currency=settings.currency
    )
    logger.debug("[loans] system built (%s stores)", stores.backend)
    return LoanSystem(
        settings=settings,
        stores=stores,
        clock=clock,
        notifier=notifier,
        gateway=gateway,
        locks=locks,
        availability=availability,
        lifecycle=lifecycle,
        review=review,
        sweep=sweep,
        settlement=settlement,
        registry=RegistryService(stores),
    )


_system: Optional[LoanSystem] = None
_system_lock = threading.Lock()


def get_system() -> LoanSystem:
    """Process-wide system, built from the environment on first use."""
    global _system
    with _system_lock:
        if _system is None:
            _system = build_system()
        return _system


def set_system(system: Optional[LoanSystem]) -> None:
    global _system
    with _system_lock:
        _system = system


__all__ = ["LoanSystem", "build_system", "get_system", "set_system"]
