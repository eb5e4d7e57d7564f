from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from modules.equipment_loans.factory import build_system
from modules.equipment_loans.models import FineStatus, LoanStatus, PersonRole


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_not_overdue_on_the_due_instant(system, open_loan):
    loan = open_loan()
    report = system.sweep.run_daily_check(_at(2024, 3, 8))
    assert report.scanned == 1
    assert report.newly_overdue == []
    assert system.stores.loans.get(loan.id).status is LoanStatus.ACTIVE


def test_first_detection_marks_overdue_and_fines(system, open_loan, requester, mailer):
    loan = open_loan()
    now = _at(2024, 3, 8, 0, 0, 1)
    report = system.sweep.run_daily_check(now)

    assert report.newly_overdue == [loan.id]
    assert len(report.fines_created) == 1
    fine = system.stores.fines.get(report.fines_created[0])
    assert fine.loan_id == loan.id
    assert fine.amount_cents == 100
    assert fine.status is FineStatus.UNPAID
    assert fine.created_at == now
    assert system.stores.loans.get(loan.id).status is LoanStatus.OVERDUE
    assert any("1.00 EUR" in m.body for m in mailer.to(requester.email))


def test_same_now_twice_creates_one_fine(system, open_loan):
    loan = open_loan()
    now = _at(2024, 3, 12)
    system.sweep.run_daily_check(now)
    second = system.sweep.run_daily_check(now)

    assert second.newly_overdue == []
    assert second.fines_created == []
    assert len(system.stores.fines.find_by_loan(loan.id)) == 1


def test_later_runs_do_not_add_fines(system, open_loan):
    loan = open_loan()
    system.sweep.run_daily_check(_at(2024, 3, 9))
    system.sweep.run_daily_check(_at(2024, 3, 20))
    fines = system.stores.fines.find_by_loan(loan.id)
    assert len(fines) == 1
    assert fines[0].amount_cents == 100


def test_grace_period_marks_overdue_without_fine(settings, clock, mailer):
    settings.fine_grace_days = 2
    system = build_system(settings, clock=clock, mailer=mailer)
    requester = system.registry.add_person("Ana", "ana@example.org", PersonRole.REQUESTER)
    camera = system.registry.add_equipment("Canon R6", "Camera")
    request_id = system.review.submit_request(camera.id, requester.id, "2024-03-01", "2024-03-05")
    loan = system.review.review_request(request_id, "Approve").loan

    inside = system.sweep.run_daily_check(_at(2024, 3, 9, 12))
    assert inside.newly_overdue == [loan.id]
    assert inside.fines_created == []
    assert system.stores.loans.get(loan.id).status is LoanStatus.OVERDUE

    after = system.sweep.run_daily_check(_at(2024, 3, 10, 12))
    assert after.newly_overdue == []
    assert len(after.fines_created) == 1
    assert system.stores.fines.get(after.fines_created[0]).amount_cents == 100


def test_returned_loans_are_skipped(system, open_loan):
    loan = open_loan()
    system.lifecycle.return_loan(loan.id)
    report = system.sweep.run_daily_check(_at(2024, 4, 1))
    assert report.scanned == 0
    assert system.stores.fines.find_by_loan(loan.id) == []


def test_defaults_to_injected_clock(system, open_loan, clock):
    open_loan()
    clock.set(_at(2024, 3, 15))
    report = system.sweep.run_daily_check()
    assert report.now == _at(2024, 3, 15)
    assert len(report.fines_created) == 1


def test_naive_now_is_utc(system, open_loan):
    open_loan()
    report = system.sweep.run_daily_check(datetime(2024, 3, 9))
    assert report.now == _at(2024, 3, 9)
    assert len(report.newly_overdue) == 1


class _FailingFinePolicy:
    def __init__(self, failing_loan_id):
        self.failing_loan_id = failing_loan_id

    def compute(self, loan, now):
        if loan.id == self.failing_loan_id:
            raise RuntimeError("fine policy unavailable")
        return 100


def test_fines_already_issued_are_announced_when_a_later_loan_fails(
    system, open_loan, requester, mailer
):
    tripod = system.registry.add_equipment("Manfrotto 055", "Support")
    first = open_loan()
    second = open_loan(equipment=tripod, start=date(2024, 3, 2), end=date(2024, 3, 6))
    system.sweep.fine_policy = _FailingFinePolicy(second.id)

    with pytest.raises(RuntimeError):
        system.sweep.run_daily_check(_at(2024, 3, 20))

    assert len(system.stores.fines.find_by_loan(first.id)) == 1
    assert any(first.id in m.body and "1.00 EUR" in m.body for m in mailer.to(requester.email))
    assert system.stores.fines.find_by_loan(second.id) == []
    assert system.stores.loans.get(second.id).status is LoanStatus.ACTIVE


def test_per_day_amount_is_fixed_at_detection(system, open_loan):
    loan = open_loan()
    system.sweep.run_daily_check(_at(2024, 3, 11))
    system.sweep.run_daily_check(_at(2024, 3, 30))
    [fine] = system.stores.fines.find_by_loan(loan.id)
    assert fine.amount_cents == 300
    assert fine.created_at == _at(2024, 3, 11)


def test_fine_notification_is_stamped_with_sweep_time(system, open_loan):
    open_loan()
    now = _at(2024, 3, 12, 6)
    system.sweep.run_daily_check(now)
    [note] = [n for n in system.notifier.recent() if n["entity_type"] == "fine"]
    assert note["created_at"] == now
