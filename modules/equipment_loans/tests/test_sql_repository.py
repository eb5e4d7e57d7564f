from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from modules.equipment_loans.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from modules.equipment_loans.models import (
    Equipment,
    EquipmentStatus,
    FineStatus,
    LoanStatus,
    Person,
    PersonRole,
    RequestStatus,
)
from modules.equipment_loans.repository import build_stores
from modules.equipment_loans.sql_repository import dispose_engines
from utils.app_settings import LoanSettings


@pytest.fixture()
def stores(sqlite_system):
    return sqlite_system.stores


def test_build_stores_picks_sqlite(tmp_path):
    stores = build_stores(LoanSettings(storage="sqlite", db_path=tmp_path / "x.db"))
    try:
        assert stores.backend == "sqlite"
        assert (tmp_path / "x.db").exists()
    finally:
        dispose_engines()


def test_person_round_trip_and_unique_email(stores):
    person = Person(id="p1", name="Ana", email="ana@example.org", role=PersonRole.REQUESTER)
    stores.people.add(person)
    assert stores.people.get("p1") == person
    assert stores.people.find_by_email("ANA@example.org") == person

    with pytest.raises(ValidationError):
        stores.people.add(Person(id="p2", name="Ana 2", email="ana@example.org", role=PersonRole.APPROVER))
    with pytest.raises(NotFoundError):
        stores.people.get("missing")


def test_equipment_status_compare_and_set(stores):
    stores.equipment.add(Equipment(id="e1", name="Tripod", category="Support"))
    assert [e.id for e in stores.equipment.list_available()] == ["e1"]

    reserved = stores.equipment.update_status(
        "e1", EquipmentStatus.RESERVED, expected=EquipmentStatus.AVAILABLE
    )
    assert reserved.status is EquipmentStatus.RESERVED
    assert stores.equipment.list_available() == []

    with pytest.raises(InvalidStateError):
        stores.equipment.update_status("e1", EquipmentStatus.LOANED, expected=EquipmentStatus.AVAILABLE)
    assert stores.equipment.get("e1").status is EquipmentStatus.RESERVED


def test_transaction_rolls_back_every_write(stores):
    with pytest.raises(RuntimeError):
        with stores.transaction():
            stores.equipment.add(Equipment(id="e1", name="Tripod", category="Support"))
            stores.equipment.update_status("e1", EquipmentStatus.RESERVED)
            raise RuntimeError("abort")
    with pytest.raises(NotFoundError):
        stores.equipment.get("e1")


def test_full_flow_on_sqlite(sqlite_system, clock):
    system = sqlite_system
    requester = system.registry.add_person("Ana", "ana@example.org", PersonRole.REQUESTER)
    system.registry.add_person("Ben", "ben@example.org", PersonRole.APPROVER)
    camera = system.registry.add_equipment("Canon R6", "Camera")

    request_id = system.review.submit_request(camera.id, requester.id, date(2024, 3, 1), date(2024, 3, 5))
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.RESERVED

    outcome = system.review.review_request(request_id, "Approve")
    loan = system.stores.loans.get(outcome.loan.id)
    assert loan.due_date == date(2024, 3, 8)
    assert loan.created_at == clock.now()
    assert loan.created_at.tzinfo is not None
    assert system.stores.requests.get(request_id).status is RequestStatus.APPROVED
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.LOANED

    report = system.sweep.run_daily_check(datetime(2024, 3, 10, tzinfo=timezone.utc))
    assert report.newly_overdue == [loan.id]
    assert system.sweep.run_daily_check(datetime(2024, 3, 10, tzinfo=timezone.utc)).fines_created == []
    [fine] = system.stores.fines.find_by_loan(loan.id)
    assert fine.amount_cents == 200

    paid = system.settlement.pay_fine(fine.id, "tok_visa")
    assert system.stores.fines.get(fine.id).status is FineStatus.PAID
    assert system.stores.receipts.find_by_fine(fine.id)[0].reference == paid.receipt_ref
    with pytest.raises(InvalidStateError):
        system.settlement.pay_fine(fine.id, "tok_visa")

    closed = system.lifecycle.return_loan(loan.id)
    assert closed.status is LoanStatus.CLOSED
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.AVAILABLE
    with pytest.raises(InvalidStateError):
        system.lifecycle.return_loan(loan.id)


def test_failed_approval_rolls_back_on_sqlite(sqlite_system, monkeypatch):
    system = sqlite_system
    requester = system.registry.add_person("Ana", "ana@example.org", PersonRole.REQUESTER)
    camera = system.registry.add_equipment("Canon R6", "Camera")
    request_id = system.review.submit_request(camera.id, requester.id, date(2024, 3, 1), date(2024, 3, 5))

    def broken_update(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(system.stores.equipment, "update_status", broken_update)
    with pytest.raises(RuntimeError):
        system.review.review_request(request_id, "Approve")
    monkeypatch.undo()

    assert system.stores.requests.get(request_id).status is RequestStatus.PENDING
    assert system.stores.loans.list_for_equipment(camera.id) == []
