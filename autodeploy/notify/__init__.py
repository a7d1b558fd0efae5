"""Outcome notification."""

from autodeploy.notify.base import MailTransport
from autodeploy.notify.mailer import NotificationMessage, OutcomeNotifier, compose_message
from autodeploy.notify.smtp import SmtpTransport

__all__ = [
    "MailTransport",
    "NotificationMessage",
    "OutcomeNotifier",
    "SmtpTransport",
    "compose_message",
]
