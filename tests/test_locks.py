"""Tests for per-tag deployment locking."""

import asyncio

import pytest

from autodeploy.deploy.locks import TagLocks
from autodeploy.errors import DeploymentInProgress


async def _occupy(locks, tag, windows, hold=0.1):
    loop = asyncio.get_running_loop()
    async with locks.hold(tag):
        start = loop.time()
        await asyncio.sleep(hold)
        windows.append((tag, start, loop.time()))


def _overlaps(a, b):
    return a[1] < b[2] and b[1] < a[2]


class TestTagLocks:
    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            TagLocks("queue")

    async def test_same_tag_never_overlaps(self):
        locks = TagLocks("wait")
        windows = []
        await asyncio.gather(*(_occupy(locks, "api", windows) for _ in range(3)))
        assert len(windows) == 3
        for i, a in enumerate(windows):
            for b in windows[i + 1:]:
                assert not _overlaps(a, b)

    async def test_different_tags_run_concurrently(self):
        locks = TagLocks("wait")
        windows = []
        await asyncio.gather(
            _occupy(locks, "api", windows, hold=0.2),
            _occupy(locks, "web", windows, hold=0.2),
        )
        assert _overlaps(windows[0], windows[1])

    async def test_reject_policy_raises_when_busy(self):
        locks = TagLocks("reject")
        windows = []
        first = asyncio.create_task(_occupy(locks, "api", windows, hold=0.2))
        await asyncio.sleep(0.05)
        assert locks.is_locked("api")
        with pytest.raises(DeploymentInProgress):
            async with locks.hold("api"):
                pass
        await first
        assert not locks.is_locked("api")

    async def test_reject_policy_allows_other_tags(self):
        locks = TagLocks("reject")
        windows = []
        first = asyncio.create_task(_occupy(locks, "api", windows, hold=0.2))
        await asyncio.sleep(0.05)
        async with locks.hold("web"):
            pass
        await first

    async def test_lock_released_after_error(self):
        locks = TagLocks("reject")
        with pytest.raises(RuntimeError):
            async with locks.hold("api"):
                raise RuntimeError("boom")
        assert not locks.is_locked("api")
        async with locks.hold("api"):
            pass
