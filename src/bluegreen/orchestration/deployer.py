"""Blue-green deployment workflow.

Drives one deployment through::

    Idle -> Launching -> Probing -> Switching -> Reaping -> Idle

with RolledBack as the terminal state for any fatal failure after the
allocator has picked a slot. Rollback always leaves the previously active
container serving traffic and the proxy config as it was.
"""

import asyncio
import logging
import time
from typing import Optional, Tuple

import httpx

from .lock import DeploymentLock
from .models import (
    DeploymentPhase,
    DeploymentResult,
    DeploymentSettings,
    DeploymentStatus,
    SlotStatus
)
from ..docker.manager import (
    ContainerLauncher,
    ContainerRuntimeError,
    DockerRuntime,
    InstanceReaper,
    run_blocking
)
from ..docker.models import ContainerState
from ..health.prober import HealthProber
from ..ports.manager import PortAllocator
from ..ports.models import Color, DeploymentTarget
from ..proxy.config_file import ProxyConfigFile
from ..proxy.controller import ProxyController
from ..proxy.switcher import TrafficSwitcher
from ..shared.errors import (
    ConfigParseError,
    DeploymentError,
    HealthCheckTimeout,
    LaunchError,
    ReaperError,
    ReloadError
)
from ..shared.utils import format_duration, get_current_timestamp

logger = logging.getLogger(__name__)


class BlueGreenDeployer:
    """Wires the allocator, launcher, prober, switcher and reaper together."""

    def __init__(
        self,
        settings: DeploymentSettings,
        runtime=None,
        controller: Optional[ProxyController] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = settings
        self.runtime = runtime or DockerRuntime(docker_host=settings.docker_host)
        self.config_file = ProxyConfigFile(settings.proxy_config)

        self.allocator = PortAllocator(settings.proxy_config, settings.app_name, settings.ports)
        self.launcher = ContainerLauncher(
            self.runtime,
            container_port=settings.container_port,
            bind_address=settings.bind_address,
            environment=settings.environment,
            network=settings.network,
            restart_policy=settings.restart_policy,
            pull=settings.pull
        )
        self.prober = HealthProber(settings.probe, transport=transport)
        self.switcher = TrafficSwitcher(
            self.config_file,
            controller or ProxyController(
                validate_command=settings.validate_command,
                reload_command=settings.reload_command,
                config_path=settings.proxy_config,
                timeout=settings.proxy_command_timeout
            )
        )
        self.reaper = InstanceReaper(self.runtime, drain_seconds=settings.drain_seconds)
        self.lock = DeploymentLock(settings.lock_path, timeout=settings.lock_timeout)

    async def deploy(self, image: str) -> DeploymentResult:
        """Deploy ``image`` to the inactive slot and move traffic to it.

        Fatal failures are reported on the returned result rather than
        raised; only ReaperError is downgraded to a warning.
        """
        result = DeploymentResult(image=image)
        logger.info(f"Deploying {image} for {self.settings.app_name}")

        try:
            async with self.lock:
                await self._run(result, image)
        except DeploymentError as e:
            # Raised before a slot was chosen: lock or config parsing
            logger.error(f"Deployment aborted during {e.stage}: {e}")
            result.fail(e)
        finally:
            result.finished_at = get_current_timestamp()

        if result.succeeded:
            logger.info(f"Deployment of {image} complete: {result.previous} -> {result.target}")
        return result

    async def _run(self, result: DeploymentResult, image: str) -> None:
        deadline = time.monotonic() + self.settings.deploy_timeout

        active, inactive = self.allocator.resolve()
        result.previous, result.target = active, inactive

        original: Optional[bytes] = None
        result.transition(DeploymentPhase.LAUNCHING)
        try:
            await self._launch(inactive, image, deadline)

            result.transition(DeploymentPhase.PROBING)
            result.probe_attempts = await self.prober.wait_until_ready(
                inactive.port, budget=deadline - time.monotonic()
            )

            result.transition(DeploymentPhase.SWITCHING)
            original = self.config_file.read_bytes()
            try:
                self.switcher.switch(active, inactive)
            except ConfigParseError as e:
                self._record_config_restore(result, original)
                raise ReloadError(f"Proxy config changed during deployment: {e}") from e
            except ReloadError:
                self._record_config_restore(result, original)
                raise
        except (LaunchError, HealthCheckTimeout, ReloadError) as e:
            logger.error(f"Deployment failed during {e.stage}: {e}")
            result.fail(e)
            await self._roll_back(result, active, inactive)
            return
        except BaseException as e:
            # Interrupted or crashed before traffic moved
            logger.error(f"Deployment interrupted during {result.phase.value}; rolling back")
            result.fail(e, stage=result.phase.value, exit_code=1)
            if original is not None and self.config_file.read_bytes() != original:
                self.config_file.restore(original)
                self._record_config_restore(result, original)
            await self._roll_back(result, active, inactive)
            raise

        result.transition(DeploymentPhase.REAPING)
        try:
            await self.reaper.reap(active)
        except ReaperError as e:
            logger.warning(f"Old instance not cleaned up (deployment still succeeded): {e}")
            result.warnings.append(str(e))

        result.transition(DeploymentPhase.IDLE)

    async def _launch(self, target: DeploymentTarget, image: str, deadline: float) -> None:
        budget = deadline - time.monotonic()
        try:
            await asyncio.wait_for(self.launcher.launch(target, image, self.settings.app_name), timeout=budget)
        except asyncio.TimeoutError as e:
            raise LaunchError(
                f"{target.container_name} did not start within the {format_duration(self.settings.deploy_timeout)} "
                f"deployment budget"
            ) from e

    def _record_config_restore(self, result: DeploymentResult, original: bytes) -> None:
        try:
            restored = self.config_file.read_bytes() == original
        except OSError:
            restored = False
        if restored:
            result.rollback_actions.append(f"restored {self.settings.proxy_config} to its previous content")
        else:
            result.rollback_actions.append(
                f"FAILED to restore {self.settings.proxy_config}; fix it by hand before the next reload"
            )

    async def _roll_back(self, result: DeploymentResult, active: DeploymentTarget,
                         inactive: DeploymentTarget) -> None:
        if await self.launcher.discard(inactive):
            result.rollback_actions.append(f"stopped and removed new container {inactive.container_name}")
        elif await self._container_exists(inactive.container_name):
            result.rollback_actions.append(
                f"FAILED to remove new container {inactive.container_name}; remove it by hand"
            )
        else:
            result.rollback_actions.append(f"no {inactive.container_name} container left behind")
        result.rollback_actions.append(f"{active} left running and serving traffic")
        result.transition(DeploymentPhase.ROLLED_BACK)
        logger.warning(f"Rolled back: {'; '.join(result.rollback_actions)}")

    async def _container_exists(self, name: str) -> bool:
        try:
            return await run_blocking(self.runtime.exists, name)
        except ContainerRuntimeError:
            return True

    async def status(self) -> DeploymentStatus:
        """Report the live slot and both slot containers."""
        status = DeploymentStatus(
            proxy_config=self.settings.proxy_config,
            locked=self.lock.is_locked()
        )
        try:
            status.active = self.allocator.active_target()
        except ConfigParseError as e:
            status.error = str(e)

        for color in Color:
            target = DeploymentTarget.for_color(self.settings.app_name, color, self.settings.ports)
            try:
                container = await run_blocking(self.runtime.state, target.container_name)
            except ContainerRuntimeError as e:
                container = ContainerState(name=target.container_name, status=f"unknown ({e.detail})")
            status.slots.append(SlotStatus(
                target=target,
                container=container,
                live=status.active is not None and status.active.color is color
            ))
        return status


def summarize(result: DeploymentResult) -> Tuple[str, list]:
    """Headline and detail lines describing a deployment outcome."""
    if result.succeeded:
        headline = f"Deployed {result.image}: {result.previous} -> {result.target}"
        details = [f"probe passed after {result.probe_attempts} attempt(s)"]
        details.extend(f"warning: {warning}" for warning in result.warnings)
        return headline, details

    headline = f"Deployment of {result.image} failed during {result.failed_stage}: {result.error}"
    details = [f"rollback: {action}" for action in result.rollback_actions]
    if not result.rolled_back:
        details.append("no changes were made")
    return headline, details
