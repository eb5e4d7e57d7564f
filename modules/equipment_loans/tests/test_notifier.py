from __future__ import annotations

import logging
from datetime import date

from modules.equipment_loans.factory import build_system
from modules.equipment_loans.models import LoanStatus, PersonRole
from notifications.models.notification import Notification
from notifications.services import LogMailer, Notifier, OutboxMailer


class BrokenMailer:
    def send(self, to, subject, body):
        raise ConnectionError("smtp down")


def test_notifier_delivers_and_remembers():
    outbox = OutboxMailer()
    notifier = Notifier(outbox, keep=2)
    for n in range(3):
        assert notifier.notify(Notification(recipient="a@example.org", title=f"t{n}", message="m"))

    assert [m.subject for m in outbox.sent] == [
        "[Equipment Loans] t0",
        "[Equipment Loans] t1",
        "[Equipment Loans] t2",
    ]
    assert [r["title"] for r in notifier.recent()] == ["t1", "t2"]


def test_notifier_swallows_mailer_failure(caplog):
    notifier = Notifier(BrokenMailer())
    with caplog.at_level(logging.WARNING):
        delivered = notifier.notify(Notification(recipient="a@example.org", title="t", message="m"))
    assert delivered is False
    assert notifier.failures == 1
    assert notifier.recent()[0]["delivered"] is False
    assert "delivery to a@example.org failed" in caplog.text


def test_notify_many_counts_deliveries():
    notifier = Notifier(OutboxMailer())
    assert notifier.notify_many(["a@example.org", "b@example.org"], "t", "m") == 2


def test_log_mailer_writes_to_log(caplog):
    with caplog.at_level(logging.INFO):
        LogMailer().send("a@example.org", "Hello", "Body")
    assert "a@example.org" in caplog.text


def test_mail_failure_does_not_undo_domain_change(settings, clock):
    system = build_system(settings, clock=clock, mailer=BrokenMailer())
    requester = system.registry.add_person("Ana", "ana@example.org", PersonRole.REQUESTER)
    system.registry.add_person("Ben", "ben@example.org", PersonRole.APPROVER)
    camera = system.registry.add_equipment("Canon R6", "Camera")

    request_id = system.review.submit_request(camera.id, requester.id, date(2024, 3, 1), date(2024, 3, 5))
    loan = system.review.review_request(request_id, "Approve").loan
    closed = system.lifecycle.return_loan(loan.id)

    assert closed.status is LoanStatus.CLOSED
    assert system.notifier.failures == 3
