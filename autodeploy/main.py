"""autodeploy entry point: wires everything together and runs the server."""

from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path

import click

from autodeploy import __version__
from autodeploy.config import Settings, load_settings
from autodeploy.core.dispatcher import Dispatcher
from autodeploy.deploy.invoker import PlaybookInvoker
from autodeploy.deploy.locks import TagLocks
from autodeploy.deploy.targets import TargetResolver
from autodeploy.notify.mailer import OutcomeNotifier
from autodeploy.notify.smtp import SmtpTransport
from autodeploy.utils.logging import get_logger, setup_logging
from autodeploy.utils.platform import normalize_path
from autodeploy.webhooks.server import DeployServer

log = get_logger(__name__)


class AutoDeploy:
    """Main application orchestrator."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

        self.resolver = TargetResolver(settings.targets)
        self.invoker = PlaybookInvoker(settings.ansible)
        self.locks = TagLocks(settings.ansible.lock_policy)
        transport = SmtpTransport(settings.email) if settings.email.smtp_host else None
        self.notifier = OutcomeNotifier(settings.email, transport)
        self.dispatcher = Dispatcher(
            secret=settings.webhook_secret,
            resolver=self.resolver,
            invoker=self.invoker,
            locks=self.locks,
            notifier=self.notifier,
        )
        self.server = DeployServer(settings.server, self.dispatcher)

    def check(self) -> list[str]:
        """Return startup warnings about configuration that cannot work."""
        problems: list[str] = []
        if not self.settings.webhook_secret:
            problems.append("webhook_secret is empty: every delivery will be rejected")
        if not len(self.resolver):
            problems.append("no targets configured: every deployable delivery will be rejected")
        if not normalize_path(self.settings.ansible.project_dir).is_dir():
            problems.append(
                f"ansible project_dir {self.settings.ansible.project_dir} does not exist"
            )
        if not self.notifier.recipients or not self.settings.email.smtp_host:
            problems.append("email not configured: outcomes will only be logged")
        return problems

    async def start(self) -> None:
        log.info(
            "autodeploy_starting",
            version=__version__,
            targets=len(self.resolver),
            lock_policy=self.locks.policy,
        )
        for problem in self.check():
            log.warning("config_problem", problem=problem)
        await self.server.start()
        log.info("autodeploy_ready")

    async def stop(self) -> None:
        log.info("autodeploy_stopping")
        await self.server.stop()
        log.info("autodeploy_stopped")


async def run(settings: Settings) -> None:
    app = AutoDeploy(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--bind", default=None, help="Address to listen on")
@click.option("--port", default=None, type=int, help="Port to listen on")
@click.version_option(__version__)
def cli(
    config_path: Path | None, log_level: str | None, bind: str | None, port: int | None
) -> None:
    """Run the GitHub webhook deployment trigger."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    if bind:
        settings.server.bind = bind
    if port is not None:
        settings.server.port = port
    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        log_file=settings.log_file,
    )
    asyncio.run(run(settings))


if __name__ == "__main__":
    cli()
