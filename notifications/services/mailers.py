"""Outbound mail transports used by :class:`Notifier`."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Protocol

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class SentMail:
    to: str
    subject: str
    body: str


class OutboxMailer:
    """Keeps every message in memory; used by tests and the in-memory setup."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sent: List[SentMail] = []

    def send(self, to: str, subject: str, body: str) -> None:
        with self._lock:
            self._sent.append(SentMail(to, subject, body))

    @property
    def sent(self) -> List[SentMail]:
        with self._lock:
            return list(self._sent)

    def to(self, address: str) -> List[SentMail]:
        return [mail for mail in self.sent if mail.to == address]

    def clear(self) -> None:
        with self._lock:
            self._sent.clear()


class LogMailer:
    """Writes each message to the log instead of delivering it."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info("[mail] to=%s subject=%s\n%s", to, subject, body)
