from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from modules.equipment_loans.exceptions import (
    AvailabilityError,
    InvalidStateError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from modules.equipment_loans.models import (
    EquipmentStatus,
    LoanStatus,
    PersonRole,
    RequestStatus,
    ReviewDecision,
)
from modules.equipment_loans.validators import coerce_date

MAR_1 = date(2024, 3, 1)
MAR_5 = date(2024, 3, 5)


def test_aware_datetimes_use_the_utc_calendar_day():
    plus_five = timezone(timedelta(hours=5))
    assert coerce_date(datetime(2024, 3, 2, 1, 0, tzinfo=plus_five), "start_date") == MAR_1
    assert coerce_date(datetime(2024, 3, 2, 1, 0), "start_date") == date(2024, 3, 2)


def test_notifications_carry_the_service_clock(system, requester, approver, camera, clock):
    system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    [submitted] = system.notifier.recent()
    assert submitted["recipient"] == approver.email
    assert submitted["created_at"] == clock.now()


def test_submit_creates_pending_request_and_reserves(system, requester, camera):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)

    request = system.stores.requests.get(request_id)
    assert request.status is RequestStatus.PENDING
    assert request.created_at == system.clock.now()
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.RESERVED
    assert [r.id for r in system.stores.requests.list_pending()] == [request_id]


def test_submit_accepts_iso_strings_and_datetimes(system, requester, camera):
    request_id = system.review.submit_request(
        camera.id, requester.id, "2024-03-02", datetime(2024, 3, 4, 15, 30)
    )
    request = system.stores.requests.get(request_id)
    assert (request.start_date, request.end_date) == (date(2024, 3, 2), date(2024, 3, 4))


@pytest.mark.parametrize(
    "start, end",
    [
        (MAR_5, MAR_1),
        (MAR_1, MAR_1),
        (date(2024, 2, 29), MAR_5),
    ],
)
def test_submit_rejects_bad_ranges(system, requester, camera, start, end):
    with pytest.raises(ValidationError):
        system.review.submit_request(camera.id, requester.id, start, end)
    assert system.stores.requests.list_pending() == []


def test_submit_unknown_ids(system, requester, camera):
    with pytest.raises(NotFoundError):
        system.review.submit_request("missing", requester.id, MAR_1, MAR_5)
    with pytest.raises(NotFoundError):
        system.review.submit_request(camera.id, "missing", MAR_1, MAR_5)


def test_only_requesters_may_submit(system, approver, camera):
    with pytest.raises(PermissionDenied):
        system.review.submit_request(camera.id, approver.id, MAR_1, MAR_5)


def test_overlapping_submit_is_unavailable(system, requester, camera):
    system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    with pytest.raises(AvailabilityError):
        system.review.submit_request(camera.id, requester.id, date(2024, 3, 4), date(2024, 3, 8))


def test_overlap_with_approved_request_is_unavailable(system, requester, camera, open_loan):
    open_loan()
    with pytest.raises(AvailabilityError):
        system.review.submit_request(camera.id, requester.id, date(2024, 3, 2), date(2024, 3, 3))


def test_back_to_back_ranges_are_allowed(system, requester, camera):
    system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    second = system.review.submit_request(camera.id, requester.id, MAR_5, date(2024, 3, 9))
    assert system.stores.requests.get(second).is_pending


def test_submit_notifies_approvers(system, requester, approver, camera, mailer):
    system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    sent = mailer.to(approver.email)
    assert len(sent) == 1
    assert "Canon R6" in sent[0].body
    assert mailer.to(requester.email) == []


def test_approve_creates_loan(system, requester, approver, camera, mailer):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    outcome = system.review.review_request(request_id, ReviewDecision.APPROVE, approver.id)

    loan = outcome.loan
    assert loan.status is LoanStatus.ACTIVE
    assert loan.due_date == date(2024, 3, 8)
    assert loan.request_id == request_id
    assert outcome.request.status is RequestStatus.APPROVED
    assert outcome.request.loan_id == loan.id
    assert outcome.request.reviewer_id == approver.id
    assert outcome.request.reviewed_at == system.clock.now()
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.LOANED
    assert any("approved" in m.body for m in mailer.to(requester.email))


def test_reject_frees_reserved_equipment(system, requester, camera, mailer):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    outcome = system.review.review_request(request_id, "reject")

    assert outcome.loan is None
    assert outcome.request.status is RequestStatus.REJECTED
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.AVAILABLE
    assert system.stores.loans.list_active() == []
    assert any("rejected" in m.body for m in mailer.to(requester.email))


def test_reject_keeps_reservation_while_other_requests_pend(system, requester, camera):
    first = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    system.review.submit_request(camera.id, requester.id, date(2024, 3, 10), date(2024, 3, 12))
    system.review.review_request(first, "Reject")
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.RESERVED


@pytest.mark.parametrize("first", ["Approve", "Reject"])
def test_re_review_is_invalid_and_changes_nothing(system, requester, camera, first):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    system.review.review_request(request_id, first)
    equipment_before = system.stores.equipment.get(camera.id)
    loans_before = system.stores.loans.list_for_equipment(camera.id)

    with pytest.raises(InvalidStateError):
        system.review.review_request(request_id, "Approve")

    assert system.stores.equipment.get(camera.id) == equipment_before
    assert system.stores.loans.list_for_equipment(camera.id) == loans_before


def test_review_unknown_request(system):
    with pytest.raises(NotFoundError):
        system.review.review_request("missing", "Approve")


def test_review_rejects_unknown_decision(system, requester, camera):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    with pytest.raises(ValidationError):
        system.review.review_request(request_id, "Maybe")


def test_only_approvers_may_review(system, requester, camera):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    with pytest.raises(PermissionDenied):
        system.review.review_request(request_id, "Approve", reviewer_id=requester.id)
    assert system.stores.requests.get(request_id).is_pending


def test_second_approval_for_loaned_equipment_fails(system, requester, camera):
    first = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)
    second = system.review.submit_request(camera.id, requester.id, date(2024, 3, 10), date(2024, 3, 12))
    system.review.review_request(first, "Approve")

    with pytest.raises(AvailabilityError):
        system.review.review_request(second, "Approve")

    assert system.stores.requests.get(second).is_pending
    assert len(system.stores.loans.list_active()) == 1


def test_approval_rolls_back_when_a_step_fails(system, requester, camera, monkeypatch):
    request_id = system.review.submit_request(camera.id, requester.id, MAR_1, MAR_5)

    def broken_update(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(system.stores.equipment, "update_status", broken_update)
    with pytest.raises(RuntimeError):
        system.review.review_request(request_id, "Approve")
    monkeypatch.undo()

    assert system.stores.requests.get(request_id).is_pending
    assert system.stores.loans.list_for_equipment(camera.id) == []
    assert system.stores.equipment.get(camera.id).status is EquipmentStatus.RESERVED


def test_category_policy_sets_due_date(settings, clock, mailer):
    from modules.equipment_loans.factory import build_system

    settings.due_policy = "category"
    settings.category_days = {"Camera": 3}
    system = build_system(settings, clock=clock, mailer=mailer)
    requester = system.registry.add_person("Ana", "ana@example.org", PersonRole.REQUESTER)
    camera = system.registry.add_equipment("Canon R6", "Camera")
    chair = system.registry.add_equipment("Chair", "Chair")

    for item, expected in ((camera, date(2024, 3, 4)), (chair, date(2024, 3, 8))):
        request_id = system.review.submit_request(item.id, requester.id, MAR_1, MAR_5)
        loan = system.review.review_request(request_id, "Approve").loan
        assert loan.due_date == expected
