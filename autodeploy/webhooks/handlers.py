"""Webhook signature validation and payload interpretation."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from autodeploy.errors import MalformedPayload, Unauthenticated, UnsupportedEvent
from autodeploy.webhooks.models import EventKind, VerifiedPayload, WebhookDelivery


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def validate_github_signature(body: bytes, signature: str, secret: str) -> bool:
    """Validate GitHub webhook HMAC-SHA256 signature.

    Must be given the raw request body, before any JSON parsing.
    Returns False if no secret is configured (rejects unauthenticated requests).
    """
    if not secret:
        return False
    if not signature:
        return False
    expected = "sha256=" + hmac.new(
        secret.encode(), body, hashlib.sha256
    ).hexdigest()
    # Undecodable header bytes arrive as lone surrogates
    received = signature.strip().encode("utf-8", "surrogateescape")
    return hmac.compare_digest(expected.encode(), received)


def verify_github_signature(delivery: WebhookDelivery, secret: str) -> None:
    """Raise Unauthenticated unless the delivery is signed with ``secret``."""
    if not delivery.signature:
        raise Unauthenticated("missing X-Hub-Signature-256 header")
    if not validate_github_signature(delivery.body, delivery.signature, secret):
        raise Unauthenticated("signature mismatch")


# ---------------------------------------------------------------------------
# Payload interpretation
# ---------------------------------------------------------------------------

def _load_object(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise MalformedPayload(f"body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedPayload("body is not a JSON object")
    return payload


def _repository_name(payload: dict[str, Any]) -> str:
    repo = payload.get("repository")
    if not isinstance(repo, dict):
        raise MalformedPayload("missing repository field")
    name = repo.get("full_name")
    if not isinstance(name, str) or not name:
        raise MalformedPayload("missing repository.full_name field")
    return name


def interpret_delivery(delivery: WebhookDelivery) -> VerifiedPayload:
    """Turn a verified delivery into a VerifiedPayload.

    Only ``ping`` and ``pull_request`` events are understood; anything else
    is UnsupportedEvent. Whether the result is worth deploying is decided by
    ``VerifiedPayload.deployable``.
    """
    try:
        kind = EventKind(delivery.event.strip())
    except ValueError:
        raise UnsupportedEvent(
            f"unsupported event type: {delivery.event or '(none)'}"
        ) from None

    payload = _load_object(delivery.body)
    sender = payload.get("sender") or {}
    sender_login = sender.get("login", "") if isinstance(sender, dict) else ""

    if kind is EventKind.PING:
        # Organization hooks ping without a repository
        repo = payload.get("repository")
        repository = repo.get("full_name", "") if isinstance(repo, dict) else ""
        return VerifiedPayload(kind=kind, repository=str(repository), sender=sender_login)

    repository = _repository_name(payload)

    action = payload.get("action")
    if not isinstance(action, str) or not action:
        raise MalformedPayload("missing action field")
    pr = payload.get("pull_request")
    if not isinstance(pr, dict):
        raise MalformedPayload("missing pull_request field")

    number = pr.get("number")
    return VerifiedPayload(
        kind=kind,
        repository=repository,
        action=action,
        # Anything but a literal JSON true counts as unmerged
        merged=pr.get("merged") is True,
        number=number if isinstance(number, int) else None,
        title=str(pr.get("title") or ""),
        merge_commit_sha=str(pr.get("merge_commit_sha") or ""),
        sender=sender_login,
    )
