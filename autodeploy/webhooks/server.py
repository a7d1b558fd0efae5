"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

import structlog
from aiohttp import web

from autodeploy.config import ServerConfig
from autodeploy.core.dispatcher import Dispatcher
from autodeploy.errors import RequestRejected
from autodeploy.utils.logging import get_logger
from autodeploy.webhooks.models import WebhookDelivery

log = get_logger(__name__)

STATUS_PATH = "/api/status"


class DeployServer:
    """Receives GitHub webhooks and hands them to the dispatcher."""

    def __init__(self, config: ServerConfig, dispatcher: Dispatcher) -> None:
        self._config = config
        self._dispatcher = dispatcher
        self._runner: web.AppRunner | None = None

    @property
    def webhook_path(self) -> str:
        return f"/api/{self._config.webhook_path}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
            path=self.webhook_path,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application(client_max_size=self._config.max_body_bytes)
        app.router.add_post(self.webhook_path, self._handle_webhook)
        app.router.add_get(STATUS_PATH, self._handle_status)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        # Raw bytes: the signature covers the body exactly as sent
        body = await request.read()
        delivery = WebhookDelivery(
            body=body,
            signature=request.headers.get("X-Hub-Signature-256", ""),
            event=request.headers.get("X-GitHub-Event", ""),
            delivery_id=request.headers.get("X-GitHub-Delivery", ""),
        )

        with structlog.contextvars.bound_contextvars(delivery=delivery.delivery_id):
            try:
                outcome = await self._dispatcher.handle(delivery)
            except RequestRejected as e:
                log.warning(
                    "webhook_rejected",
                    status=e.status,
                    reason=e.reason,
                    detail=e.detail,
                    event_type=delivery.event,
                    remote=request.remote,
                )
                return web.json_response(
                    {"status": "rejected", "reason": e.reason}, status=e.status
                )
            except Exception:
                log.exception("webhook_error", event_type=delivery.event)
                return web.json_response({"status": "error"}, status=500)

            log.info("webhook_handled", status=outcome.status, repo=outcome.payload.repository)
            return web.json_response({"status": outcome.status})
