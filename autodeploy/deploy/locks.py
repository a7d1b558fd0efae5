"""Per-tag mutual exclusion for playbook runs."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from autodeploy.errors import DeploymentInProgress
from autodeploy.utils.logging import get_logger

log = get_logger(__name__)


class TagLocks:
    """Keyed lock registry: one asyncio.Lock per tag, created lazily, never removed.

    Runs for different tags never contend. Runs for the same tag either
    queue behind each other (``wait``) or the latecomer is refused with
    DeploymentInProgress (``reject``).
    """

    def __init__(self, policy: str = "wait") -> None:
        if policy not in ("wait", "reject"):
            raise ValueError(f"unknown lock policy: {policy}")
        self._policy = policy
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def policy(self) -> str:
        return self._policy

    def _lock_for(self, tag: str) -> asyncio.Lock:
        # Single event loop thread: check-then-insert cannot interleave
        lock = self._locks.get(tag)
        if lock is None:
            lock = self._locks[tag] = asyncio.Lock()
        return lock

    def is_locked(self, tag: str) -> bool:
        lock = self._locks.get(tag)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, tag: str) -> AsyncIterator[None]:
        lock = self._lock_for(tag)
        if lock.locked():
            if self._policy == "reject":
                log.warning("deployment_lock_busy", tag=tag, policy=self._policy)
                raise DeploymentInProgress(f"tag {tag} is already deploying")
            log.info("deployment_lock_waiting", tag=tag)
        async with lock:
            yield
