"""Tests for the per-target deployment lock."""

import asyncio
import os

import pytest

from bluegreen.orchestration import DeploymentLock
from bluegreen.shared.errors import DeploymentLockedError


class TestDeploymentLock:
    """Test exclusive locking between deployments."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, tmp_path):
        lock = DeploymentLock(tmp_path / "app.conf.lock")

        async with lock:
            assert lock.held
            assert (tmp_path / "app.conf.lock").read_text().strip() == str(os.getpid())

        assert not lock.held
        assert not lock.is_locked()

    @pytest.mark.asyncio
    async def test_second_deployment_is_rejected(self, tmp_path):
        path = tmp_path / "app.conf.lock"

        async with DeploymentLock(path):
            other = DeploymentLock(path, timeout=0)
            assert other.is_locked()
            with pytest.raises(DeploymentLockedError, match="Another deployment"):
                await other.acquire()
            assert not other.held

    @pytest.mark.asyncio
    async def test_waits_for_release(self, tmp_path):
        path = tmp_path / "app.conf.lock"
        first = DeploymentLock(path)
        await first.acquire()

        async def release_soon():
            await asyncio.sleep(0.1)
            first.release()

        waiter = DeploymentLock(path, timeout=2, poll_interval=0.02)
        releaser = asyncio.create_task(release_soon())
        await waiter.acquire()
        await releaser

        assert waiter.held
        waiter.release()

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self, tmp_path):
        path = tmp_path / "app.conf.lock"

        with pytest.raises(RuntimeError):
            async with DeploymentLock(path):
                raise RuntimeError("boom")

        async with DeploymentLock(path) as again:
            assert again.held

    def test_locked_error_exit_code(self):
        assert DeploymentLockedError.exit_code == 7
