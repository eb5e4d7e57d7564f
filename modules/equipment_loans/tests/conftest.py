from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from modules.equipment_loans.factory import LoanSystem, build_system
from modules.equipment_loans.models import PersonRole
from modules.equipment_loans.payments import SandboxPaymentGateway
from modules.equipment_loans.sql_repository import dispose_engines, sqlite_stores
from notifications.services.mailers import OutboxMailer
from utils.app_settings import LoanSettings
from utils.clock import FixedClock

START = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture()
def mailer() -> OutboxMailer:
    return OutboxMailer()


@pytest.fixture()
def gateway() -> SandboxPaymentGateway:
    return SandboxPaymentGateway()


@pytest.fixture()
def settings(tmp_path) -> LoanSettings:
    return LoanSettings(db_path=tmp_path / "loans.db")


@pytest.fixture()
def system(settings, clock, mailer, gateway) -> LoanSystem:
    return build_system(settings, clock=clock, mailer=mailer, gateway=gateway)


@pytest.fixture()
def sqlite_system(tmp_path, settings, clock, mailer, gateway):
    stores = sqlite_stores(tmp_path / "loans.db")
    yield build_system(settings, clock=clock, mailer=mailer, gateway=gateway, stores=stores)
    dispose_engines()


@pytest.fixture()
def requester(system):
    return system.registry.add_person("Ana Borrower", "ana@example.org", PersonRole.REQUESTER)


@pytest.fixture()
def approver(system):
    return system.registry.add_person("Ben Lead", "ben@example.org", PersonRole.APPROVER)


@pytest.fixture()
def camera(system):
    return system.registry.add_equipment("Canon R6", "Camera")


@pytest.fixture()
def open_loan(system, requester, camera):
    """Submit and approve a request, returning the resulting loan."""

    def _open(equipment=None, start=date(2024, 3, 1), end=date(2024, 3, 5)):
        equipment = equipment or camera
        request_id = system.review.submit_request(equipment.id, requester.id, start, end)
        return system.review.review_request(request_id, "Approve").loan

    return _open
