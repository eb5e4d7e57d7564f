from .mailers import LogMailer, Mailer, OutboxMailer, SentMail
from .notifier import Notifier

__all__ = [
    "Notifier",
    "Mailer",
    "OutboxMailer",
    "LogMailer",
    "SentMail",
]
