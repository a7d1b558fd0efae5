"""GitHub webhook intake."""

from autodeploy.webhooks.handlers import (
    interpret_delivery,
    validate_github_signature,
    verify_github_signature,
)
from autodeploy.webhooks.models import EventKind, VerifiedPayload, WebhookDelivery

__all__ = [
    "EventKind",
    "VerifiedPayload",
    "WebhookDelivery",
    "interpret_delivery",
    "validate_github_signature",
    "verify_github_signature",
]
