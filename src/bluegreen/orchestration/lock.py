"""Per-target deployment lock.

An exclusive ``flock`` on a file next to the proxy config serialises
deployments that would otherwise race on the same upstream file.
"""

import asyncio
import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Optional, Union

from ..shared.errors import DeploymentLockedError

logger = logging.getLogger(__name__)


class DeploymentLock:
    """Async context manager holding an exclusive lock for one deploy target."""

    def __init__(self, path: Union[str, Path], timeout: float = 0, poll_interval: float = 0.2):
        self.path = Path(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def _try_lock(self, fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    def _holder(self) -> str:
        try:
            holder = self.path.read_text().strip()
        except OSError:
            return "unknown"
        return holder or "unknown"

    async def acquire(self) -> None:
        """Take the lock, waiting up to ``timeout`` seconds.

        Raises:
            DeploymentLockedError: If another deployment keeps holding it
        """
        if self.held:
            raise RuntimeError(f"Lock {self.path} is already held by this deployment")

        try:
            fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise DeploymentLockedError(f"Cannot open lock file {self.path}: {e}") from e

        deadline = time.monotonic() + self.timeout
        while not self._try_lock(fd):
            if time.monotonic() >= deadline:
                os.close(fd)
                raise DeploymentLockedError(
                    f"Another deployment (pid {self._holder()}) holds {self.path}"
                )
            await asyncio.sleep(self.poll_interval)

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug(f"Acquired deployment lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            os.ftruncate(self._fd, 0)
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Released deployment lock {self.path}")

    def is_locked(self) -> bool:
        """Check whether some deployment currently holds the lock."""
        if self.held:
            return True
        if not self.path.exists():
            return False
        fd = os.open(str(self.path), os.O_RDONLY)
        try:
            if self._try_lock(fd):
                fcntl.flock(fd, fcntl.LOCK_UN)
                return False
            return True
        finally:
            os.close(fd)

    async def __aenter__(self) -> "DeploymentLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
