"""Readiness polling for a newly launched slot."""

import asyncio
import logging
import time
from typing import Optional

import httpx

from .models import ProbeMode, ProbeSettings
from ..shared.errors import HealthCheckTimeout
from ..shared.python_logger_config import TRACE
from ..shared.utils import format_duration

logger = logging.getLogger(__name__)


class HealthProber:
    """Polls a port until it answers, or gives up at a deadline.

    The deadline is the earlier of the probe's own timeout and any budget
    handed in by the caller, so an overall deployment timeout cancels the
    wait even when the probe timeout is longer.
    """

    def __init__(self, settings: ProbeSettings = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or ProbeSettings()
        self.transport = transport
        self.attempts = 0
        self.last_failure: Optional[str] = None

    async def _check_http(self, client: httpx.AsyncClient, port: int) -> bool:
        url = self.settings.url(port)
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            self.last_failure = f"{e.__class__.__name__}: {e}" if str(e) else e.__class__.__name__
            return False

        if response.status_code in self.settings.expected_status:
            return True
        self.last_failure = f"HTTP {response.status_code} from {url}"
        return False

    async def _check_tcp(self, port: int) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.settings.host, port),
                timeout=self.settings.request_timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            self.last_failure = f"TCP connect to {self.settings.host}:{port} failed: {e.__class__.__name__}"
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def check_once(self, port: int, client: Optional[httpx.AsyncClient] = None) -> bool:
        """Run a single readiness check."""
        self.attempts += 1
        if self.settings.mode is ProbeMode.TCP:
            ready = await self._check_tcp(port)
        else:
            ready = await self._check_http(client, port)

        if ready:
            logger.debug(f"Probe attempt {self.attempts} on port {port} succeeded")
        else:
            logger.log(TRACE, f"Probe attempt {self.attempts} on port {port} failed: {self.last_failure}")
        return ready

    async def _poll(self, port: int) -> int:
        async with httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            transport=self.transport,
            follow_redirects=False
        ) as client:
            while True:
                if await self.check_once(port, client):
                    return self.attempts
                await asyncio.sleep(self.settings.interval)

    async def wait_until_ready(self, port: int, budget: Optional[float] = None) -> int:
        """Block until ``port`` passes the readiness check.

        Args:
            port: Host port of the new slot
            budget: Remaining overall deployment time in seconds

        Returns:
            Number of attempts it took

        Raises:
            HealthCheckTimeout: If the deadline elapses first
        """
        timeout = self.settings.timeout
        if budget is not None:
            timeout = max(0.0, min(timeout, budget))

        self.attempts = 0
        self.last_failure = None
        target = (f"{self.settings.url(port)}" if self.settings.mode is ProbeMode.HTTP
                  else f"tcp://{self.settings.host}:{port}")
        logger.info(f"Waiting up to {format_duration(timeout)} for {target} to become ready")

        started = time.monotonic()
        try:
            attempts = await asyncio.wait_for(self._poll(port), timeout=timeout)
        except asyncio.TimeoutError:
            detail = f"; last failure: {self.last_failure}" if self.last_failure else ""
            raise HealthCheckTimeout(
                f"{target} not ready after {format_duration(timeout)} "
                f"({self.attempts} attempts{detail})"
            ) from None

        logger.info(f"{target} ready after {attempts} attempt(s) in {format_duration(time.monotonic() - started)}")
        return attempts
