"""Compose and send deployment outcome emails."""

from __future__ import annotations

from dataclasses import dataclass

from autodeploy.config import EmailConfig
from autodeploy.deploy.models import InvocationResult
from autodeploy.errors import NotificationDeliveryFailed
from autodeploy.notify.base import MailTransport
from autodeploy.utils.logging import get_logger
from autodeploy.webhooks.models import VerifiedPayload

log = get_logger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    recipients: tuple[str, ...]
    subject: str
    body: str


def truncate_output(text: str, max_chars: int) -> str:
    """Keep the last ``max_chars`` characters, noting how much was dropped."""
    text = text.strip()
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    dropped = len(text) - max_chars
    return f"... (truncated, {dropped} of {len(text)} chars omitted)\n" + text[-max_chars:]


def compose_message(
    result: InvocationResult,
    payload: VerifiedPayload,
    recipients: tuple[str, ...],
    max_output_chars: int,
) -> NotificationMessage:
    subject = f"[autodeploy] {payload.repository} ({result.tag}): {result.outcome.label}"

    lines = [
        f"Repository: {payload.repository}",
        f"Tag:        {result.tag}",
    ]
    if payload.number is not None:
        lines.append(f"Pull req:   #{payload.number} {payload.title}".rstrip())
    if payload.merge_commit_sha:
        lines.append(f"Commit:     {payload.merge_commit_sha}")
    if payload.sender:
        lines.append(f"Merged by:  {payload.sender}")
    lines.append(f"Outcome:    {result.outcome.label}")
    if result.exit_code is not None:
        lines.append(f"Exit code:  {result.exit_code}")
    lines.append(f"Duration:   {result.duration:.1f}s")
    if result.command:
        lines.append(f"Command:    {' '.join(result.command)}")
    if result.error:
        lines += ["", result.error]

    lines += [
        "",
        "---- stdout ----",
        truncate_output(result.stdout, max_output_chars) or "(empty)",
        "",
        "---- stderr ----",
        truncate_output(result.stderr, max_output_chars) or "(empty)",
    ]
    return NotificationMessage(recipients=recipients, subject=subject, body="\n".join(lines) + "\n")


class OutcomeNotifier:
    """Best-effort email of an InvocationResult to the configured recipients.

    Delivery failures are logged and swallowed; callers only learn whether
    the send went through via the return value.
    """

    def __init__(self, config: EmailConfig, transport: MailTransport | None) -> None:
        self._config = config
        self._transport = transport
        # Parsed once; config is not reloaded
        self._recipients = tuple(config.recipients)

    @property
    def recipients(self) -> tuple[str, ...]:
        return self._recipients

    async def notify(self, result: InvocationResult, payload: VerifiedPayload) -> bool:
        message = compose_message(
            result, payload, self._recipients, self._config.max_output_chars
        )
        if self._transport is None or not self._recipients:
            log.warning(
                "notification_skipped",
                subject=message.subject,
                reason="no transport" if self._transport is None else "no recipients",
            )
            return False

        try:
            await self._transport.send(list(message.recipients), message.subject, message.body)
        except NotificationDeliveryFailed as e:
            log.error("notification_delivery_failed", subject=message.subject, error=str(e))
            return False
        except Exception:
            log.exception("notification_delivery_failed", subject=message.subject)
            return False

        log.info(
            "notification_sent",
            subject=message.subject,
            recipients=len(message.recipients),
        )
        return True
