from __future__ import annotations

import dataclasses
import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from notifications.models.notification import Notification
from .mailers import LogMailer, Mailer

logger = logging.getLogger(__name__)


class Notifier:
    """Turns notifications into mail and remembers the recent ones.

    Delivery is attempted once. A failing mailer is logged and never raised
    to the caller, so the domain change that triggered the notification
    stands.
    """

    def __init__(self, mailer: Optional[Mailer] = None, keep: int = 200) -> None:
        self.mailer: Mailer = mailer or LogMailer()
        self._lock = threading.Lock()
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=keep)
        self._failures = 0

    # ---- Public API --------------------------------------------------------
    def notify(self, note: Notification) -> bool:
        payload = dataclasses.asdict(note)
        payload["delivered"] = False
        try:
            self.mailer.send(note.recipient, note.subject, note.message)
            payload["delivered"] = True
        except Exception:
            with self._lock:
                self._failures += 1
            logger.warning(
                "[notify] delivery to %s failed (%s)", note.recipient, note.title, exc_info=True
            )
        with self._lock:
            self._recent.append(payload)
        return payload["delivered"]

    def notify_many(self, recipients: List[str], title: str, message: str, **extra: Any) -> int:
        delivered = 0
        for recipient in recipients:
            if self.notify(Notification(recipient=recipient, title=title, message=message, **extra)):
                delivered += 1
        return delivered

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._recent)[-limit:]

    @property
    def failures(self) -> int:
        return self._failures
