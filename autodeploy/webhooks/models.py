"""Webhook delivery models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    PING = "ping"
    PULL_REQUEST = "pull_request"


@dataclass(frozen=True)
class WebhookDelivery:
    body: bytes
    signature: str = ""
    event: str = ""
    delivery_id: str = ""


@dataclass(frozen=True)
class VerifiedPayload:
    kind: EventKind
    repository: str
    action: str = ""
    merged: bool = False
    number: int | None = None
    title: str = ""
    merge_commit_sha: str = ""
    sender: str = ""

    @property
    def deployable(self) -> bool:
        """Only a merged pull request closure triggers a deployment."""
        return (
            self.kind is EventKind.PULL_REQUEST
            and self.action == "closed"
            and self.merged
        )
