"""Error hierarchy for webhook dispatch.

Request-level rejections carry the HTTP status the server answers with.
Deployment outcomes (failed, timed out, could not start) are not errors:
they are recorded on an InvocationResult and reported by email.
"""


class DeployError(Exception):
    """Base exception for all autodeploy errors."""

    pass


class RequestRejected(DeployError):
    """A delivery refused before any deployment is attempted."""

    status: int = 400
    reason: str = "rejected"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.reason)
        self.detail = detail or self.reason


class Unauthenticated(RequestRejected):
    """Missing or mismatched X-Hub-Signature-256."""

    status = 401
    reason = "invalid signature"


class MalformedPayload(RequestRejected):
    """Body is not JSON or lacks a required field."""

    status = 400
    reason = "malformed payload"


class UnsupportedEvent(RequestRejected):
    """X-GitHub-Event is not one this service acts on."""

    status = 400
    reason = "unsupported event"


class UnknownRepository(RequestRejected):
    """Authentic delivery for a repository with no configured tag.

    Never falls back to another repository's tag.
    """

    status = 404
    reason = "repository not configured"


class DeploymentInProgress(RequestRejected):
    """Tag is already deploying and the lock policy is 'reject'."""

    status = 409
    reason = "deployment in progress"


class NotificationDeliveryFailed(DeployError):
    """Mail transport could not deliver. Logged only, never surfaced."""

    pass
