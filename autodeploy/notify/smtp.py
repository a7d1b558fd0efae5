"""SMTP mail transport."""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage

from autodeploy.config import EmailConfig
from autodeploy.errors import NotificationDeliveryFailed
from autodeploy.notify.base import MailTransport


class SmtpTransport(MailTransport):
    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    def build_message(self, recipients: list[str], subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._config.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        msg = self.build_message(recipients, subject, body)
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryFailed(
                f"{self._config.smtp_host}:{self._config.smtp_port}: {e}"
            ) from e

    def _deliver(self, msg: EmailMessage) -> None:
        cfg = self._config
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds) as smtp:
            if cfg.use_starttls:
                smtp.starttls()
            if cfg.username:
                smtp.login(cfg.username, cfg.password)
            smtp.send_message(msg)
