"""Shared fakes for dispatch tests."""

import asyncio
import hashlib
import hmac
import json

import pytest

from autodeploy.config import EmailConfig
from autodeploy.deploy.models import InvocationResult, Outcome
from autodeploy.notify.base import MailTransport
from autodeploy.notify.mailer import OutcomeNotifier

SECRET = "gh-secret"


def sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def pr_body(repo="org/api", action="closed", merged=True, number=7) -> bytes:
    return json.dumps({
        "action": action,
        "number": number,
        "pull_request": {
            "number": number,
            "title": "Ship it",
            "merged": merged,
            "merge_commit_sha": "abc123",
        },
        "repository": {"full_name": repo},
        "sender": {"login": "alice"},
    }).encode()


class FakeInvoker:
    """Records calls and the time window each run occupied."""

    def __init__(self, outcome=Outcome.SUCCESS, delay=0.0, stdout="PLAY RECAP ok=3", stderr=""):
        self.outcome = outcome
        self.delay = delay
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[str] = []
        self.windows: list[tuple[str, float, float]] = []

    async def run(self, tag: str) -> InvocationResult:
        loop = asyncio.get_running_loop()
        self.calls.append(tag)
        start = loop.time()
        await asyncio.sleep(self.delay)
        self.windows.append((tag, start, loop.time()))
        return InvocationResult(
            tag=tag,
            outcome=self.outcome,
            exit_code=0 if self.outcome is Outcome.SUCCESS else 2,
            stdout=self.stdout,
            stderr=self.stderr,
            duration=self.delay,
            command=["ansible-playbook", "site.yml", "--tags", tag],
        )


class FakeTransport(MailTransport):
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[list[str], str, str]] = []
        self.error = error

    async def send(self, recipients, subject, body) -> None:
        self.sent.append((recipients, subject, body))
        if self.error is not None:
            raise self.error


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def notifier(transport):
    return OutcomeNotifier(
        EmailConfig(smtp_host="mail.test", recipients=["ops@example.org", "dev@example.org"]),
        transport,
    )
