"""Tests for outcome emails and the SMTP transport."""

import smtplib

import pytest

from autodeploy.config import EmailConfig
from autodeploy.deploy.models import InvocationResult, Outcome
from autodeploy.errors import NotificationDeliveryFailed
from autodeploy.notify.mailer import OutcomeNotifier, compose_message, truncate_output
from autodeploy.notify.smtp import SmtpTransport
from autodeploy.webhooks.models import EventKind, VerifiedPayload

from conftest import FakeTransport

PAYLOAD = VerifiedPayload(
    kind=EventKind.PULL_REQUEST,
    repository="org/api",
    action="closed",
    merged=True,
    number=12,
    title="Fix the thing",
    merge_commit_sha="deadbeef",
    sender="alice",
)


def _result(outcome=Outcome.SUCCESS, **kwargs):
    defaults = dict(tag="api", outcome=outcome, exit_code=0, stdout="ok", stderr="", duration=1.25)
    defaults.update(kwargs)
    return InvocationResult(**defaults)


class TestTruncateOutput:
    def test_short_text_unchanged(self):
        assert truncate_output("hello\n", 100) == "hello"

    def test_keeps_tail(self):
        text = "a" * 50 + "FATAL"
        out = truncate_output(text, 10)
        assert out.endswith("a" * 5 + "FATAL")
        assert "truncated, 45 of 55 chars omitted" in out


class TestComposeMessage:
    def test_subject_names_repo_tag_and_outcome(self):
        msg = compose_message(_result(), PAYLOAD, ("ops@example.org",), 1000)
        assert msg.subject == "[autodeploy] org/api (api): SUCCESS"
        assert msg.recipients == ("ops@example.org",)

    @pytest.mark.parametrize("outcome,label", [
        (Outcome.FAILED, "FAILED"),
        (Outcome.TIMEOUT, "TIMEOUT"),
        (Outcome.INVOCATION_ERROR, "ERROR"),
        (Outcome.IN_PROGRESS, "IN PROGRESS"),
    ])
    def test_failure_labels(self, outcome, label):
        msg = compose_message(_result(outcome), PAYLOAD, (), 1000)
        assert msg.subject.endswith(label)

    def test_body_contains_details_and_output(self):
        result = _result(
            Outcome.FAILED,
            exit_code=2,
            stdout="PLAY RECAP",
            stderr="fatal: unreachable",
            command=["ansible-playbook", "site.yml", "--tags", "api"],
            error="Playbook exited with status 2",
        )
        body = compose_message(result, PAYLOAD, (), 1000).body
        assert "#12 Fix the thing" in body
        assert "deadbeef" in body
        assert "alice" in body
        assert "Exit code:  2" in body
        assert "ansible-playbook site.yml --tags api" in body
        assert "Playbook exited with status 2" in body
        assert "PLAY RECAP" in body
        assert "fatal: unreachable" in body

    def test_body_output_is_bounded(self):
        result = _result(stdout="x" * 50_000, stderr="y" * 50_000)
        body = compose_message(result, PAYLOAD, (), 500).body
        assert len(body) < 2_000

    def test_empty_output_marked(self):
        body = compose_message(_result(stdout=""), PAYLOAD, (), 100).body
        assert "(empty)" in body


class TestOutcomeNotifier:
    async def test_sends_to_all_recipients(self, notifier, transport):
        assert await notifier.notify(_result(), PAYLOAD) is True
        assert len(transport.sent) == 1
        assert transport.sent[0][0] == ["ops@example.org", "dev@example.org"]

    async def test_delivery_failure_is_swallowed(self):
        transport = FakeTransport(error=NotificationDeliveryFailed("refused"))
        notifier = OutcomeNotifier(EmailConfig(recipients=["ops@example.org"]), transport)
        assert await notifier.notify(_result(), PAYLOAD) is False
        assert len(transport.sent) == 1

    async def test_unexpected_transport_error_is_swallowed(self):
        transport = FakeTransport(error=RuntimeError("bug"))
        notifier = OutcomeNotifier(EmailConfig(recipients=["ops@example.org"]), transport)
        assert await notifier.notify(_result(), PAYLOAD) is False

    async def test_skipped_without_recipients(self):
        transport = FakeTransport()
        notifier = OutcomeNotifier(EmailConfig(recipients=[]), transport)
        assert await notifier.notify(_result(), PAYLOAD) is False
        assert transport.sent == []

    async def test_skipped_without_transport(self):
        notifier = OutcomeNotifier(EmailConfig(recipients=["ops@example.org"]), None)
        assert await notifier.notify(_result(), PAYLOAD) is False


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[str] = []
        self.messages = []
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(f"login:{user}")

    def send_message(self, msg):
        self.messages.append(msg)


class TestSmtpTransport:
    def test_build_message_headers(self):
        transport = SmtpTransport(EmailConfig(sender="bot@example.org"))
        msg = transport.build_message(["a@example.org", "b@example.org"], "subj", "body text")
        assert msg["From"] == "bot@example.org"
        assert msg["To"] == "a@example.org, b@example.org"
        assert msg["Subject"] == "subj"
        assert "body text" in msg.get_content()

    async def test_send_uses_starttls_and_login(self, monkeypatch):
        _FakeSMTP.instances.clear()
        monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)
        cfg = EmailConfig(
            smtp_host="mail.test", smtp_port=587, use_starttls=True,
            username="bot", password="pw",
        )
        await SmtpTransport(cfg).send(["ops@example.org"], "subj", "body")
        smtp = _FakeSMTP.instances[0]
        assert (smtp.host, smtp.port) == ("mail.test", 587)
        assert smtp.calls == ["starttls", "login:bot"]
        assert len(smtp.messages) == 1

    async def test_connection_error_raises_delivery_failed(self, monkeypatch):
        def _refuse(*args, **kwargs):
            raise ConnectionRefusedError("nope")

        monkeypatch.setattr(smtplib, "SMTP", _refuse)
        with pytest.raises(NotificationDeliveryFailed):
            await SmtpTransport(EmailConfig(smtp_host="mail.test")).send(["a@b.c"], "s", "b")
