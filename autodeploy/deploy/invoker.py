"""Run the Ansible playbook for one tag and observe the result."""

from __future__ import annotations

import asyncio
import os
import signal
import time

from autodeploy.config import AnsibleConfig
from autodeploy.deploy.models import InvocationResult, Outcome
from autodeploy.utils.logging import get_logger

log = get_logger(__name__)

# Per-stream capture ceiling; the tail is kept since failures print last
_MAX_CAPTURE_BYTES = 1024 * 1024
# Seconds between SIGTERM and SIGKILL when a run is being stopped
_KILL_GRACE = 5.0
# Seconds to wait for pipes to close after the child has exited
_READER_GRACE = 2.0


async def _drain(stream: asyncio.StreamReader, sink: bytearray) -> None:
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            return
        sink.extend(chunk)
        overflow = len(sink) - _MAX_CAPTURE_BYTES
        if overflow > 0:
            del sink[:overflow]


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    if proc.returncode is not None:
        return
    try:
        if hasattr(os, "killpg"):
            # start_new_session=True made the child its own group leader
            os.killpg(proc.pid, sig)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


class PlaybookInvoker:
    """Runs ``ansible-playbook ... --tags <tag>`` in the configured project dir.

    Every call yields exactly one InvocationResult; nothing is raised for a
    failed, timed out, or unstartable run. The child process (and anything
    it spawned in its process group) is killed and reaped on every exit
    path, including cancellation of the calling task.
    """

    def __init__(self, config: AnsibleConfig) -> None:
        self._config = config

    @property
    def timeout(self) -> float:
        return self._config.timeout_seconds

    def build_command(self, tag: str) -> list[str]:
        cfg = self._config
        command = [cfg.binary, cfg.playbook]
        if cfg.inventory:
            command += ["-i", cfg.inventory]
        command += [*cfg.extra_args, "--tags", tag]
        return command

    async def run(self, tag: str) -> InvocationResult:
        command = self.build_command(tag)
        cwd = self._config.project_dir
        log.info("deployment_started", tag=tag, cwd=cwd, timeout=self.timeout)
        started = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as e:
            # Missing binary, bad working directory, not executable
            log.error(
                "deployment_invocation_error",
                tag=tag,
                cwd=cwd,
                error=str(e),
                error_type=type(e).__name__,
            )
            return InvocationResult(
                tag=tag,
                outcome=Outcome.INVOCATION_ERROR,
                duration=time.monotonic() - started,
                command=command,
                error=f"Unable to start {command[0]} in {cwd}: {e}",
            )

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        readers = [
            asyncio.create_task(_drain(proc.stdout, stdout_buf)),
            asyncio.create_task(_drain(proc.stderr, stderr_buf)),
        ]
        timed_out = False
        try:
            try:
                await asyncio.wait_for(proc.wait(), timeout=self.timeout)
            except asyncio.TimeoutError:
                timed_out = True
                log.warning("deployment_timeout", tag=tag, pid=proc.pid, timeout=self.timeout)
                await self._stop(proc)
            # A grandchild that left the process group can hold the pipes open
            await asyncio.wait(readers, timeout=_READER_GRACE)
        finally:
            if proc.returncode is None:
                # Caller was cancelled mid-run
                _signal_group(proc, signal.SIGKILL)
                await proc.wait()
            for reader in readers:
                if not reader.done():
                    reader.cancel()

        duration = time.monotonic() - started
        exit_code = proc.returncode
        if timed_out:
            outcome = Outcome.TIMEOUT
            error = f"Playbook exceeded {self.timeout:g}s and was terminated"
        elif exit_code == 0:
            outcome = Outcome.SUCCESS
            error = ""
        else:
            outcome = Outcome.FAILED
            error = f"Playbook exited with status {exit_code}"

        log.info(
            "deployment_finished",
            tag=tag,
            outcome=outcome.value,
            exit_code=exit_code,
            duration=round(duration, 3),
        )
        stdout = stdout_buf.decode("utf-8", errors="replace")
        stderr = stderr_buf.decode("utf-8", errors="replace")
        log.debug("deployment_output", tag=tag, stdout=stdout[-2000:], stderr=stderr[-2000:])
        return InvocationResult(
            tag=tag,
            outcome=outcome,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
            command=command,
            error=error,
        )

    async def _stop(self, proc: asyncio.subprocess.Process) -> None:
        _signal_group(proc, signal.SIGTERM)
        try:
            await asyncio.wait_for(proc.wait(), timeout=_KILL_GRACE)
        except asyncio.TimeoutError:
            _signal_group(proc, signal.SIGKILL)
            await proc.wait()
