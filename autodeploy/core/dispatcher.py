"""Webhook dispatch pipeline: verify → interpret → resolve → invoke → notify."""

from __future__ import annotations

from dataclasses import dataclass

from autodeploy.deploy.invoker import PlaybookInvoker
from autodeploy.deploy.locks import TagLocks
from autodeploy.deploy.models import InvocationResult, Outcome
from autodeploy.deploy.targets import TargetResolver
from autodeploy.errors import DeploymentInProgress
from autodeploy.notify.mailer import OutcomeNotifier
from autodeploy.utils.logging import get_logger
from autodeploy.webhooks.handlers import interpret_delivery, verify_github_signature
from autodeploy.webhooks.models import VerifiedPayload, WebhookDelivery

log = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    status: str  # "ignored" or "deployed"
    payload: VerifiedPayload
    result: InvocationResult | None = None
    notified: bool = False


class Dispatcher:
    """Orchestrates one delivery from raw bytes to emailed outcome.

    Rejections (bad signature, bad payload, unknown repository, busy tag)
    raise a RequestRejected subclass before any playbook runs. Once a
    playbook has been started, every outcome is returned, never raised.
    """

    def __init__(
        self,
        secret: str,
        resolver: TargetResolver,
        invoker: PlaybookInvoker,
        locks: TagLocks,
        notifier: OutcomeNotifier,
    ) -> None:
        self._secret = secret
        self._resolver = resolver
        self._invoker = invoker
        self._locks = locks
        self._notifier = notifier

    async def handle(self, delivery: WebhookDelivery) -> DispatchResult:
        # Signature first: nothing touches the body until it is authentic
        verify_github_signature(delivery, self._secret)
        payload = interpret_delivery(delivery)

        if not payload.deployable:
            log.info(
                "webhook_ignored",
                event_type=payload.kind.value,
                repo=payload.repository,
                action=payload.action,
                merged=payload.merged,
            )
            return DispatchResult(status="ignored", payload=payload)

        tag = self._resolver.resolve(payload.repository)
        log.info("webhook_deployable", repo=payload.repository, tag=tag, pr=payload.number)

        try:
            async with self._locks.hold(tag):
                result = await self._invoker.run(tag)
        except DeploymentInProgress as e:
            busy = InvocationResult(tag=tag, outcome=Outcome.IN_PROGRESS, error=str(e))
            await self._notifier.notify(busy, payload)
            raise

        notified = await self._notifier.notify(result, payload)
        return DispatchResult(
            status="deployed", payload=payload, result=result, notified=notified
        )
