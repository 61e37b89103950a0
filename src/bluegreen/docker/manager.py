"""Docker container lifecycle for blue-green slots."""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from python_on_whales import DockerClient
from python_on_whales.exceptions import DockerException, NoSuchContainer

from .models import ContainerSpec, ContainerState, MANAGED_LABEL, MANAGED_VALUE
from ..ports.models import DeploymentTarget
from ..shared.errors import LaunchError, ReaperError

logger = logging.getLogger(__name__)

# Global executor for blocking docker CLI calls
executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="bluegreen-docker")


async def run_blocking(func, *args, **kwargs):
    """Run a synchronous runtime call without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, functools.partial(func, *args, **kwargs))


class ContainerRuntimeError(Exception):
    """A container runtime operation failed for a reason other than a missing container."""

    def __init__(self, operation: str, name: str, detail: str):
        self.operation = operation
        self.name = name
        self.detail = detail
        super().__init__(f"{operation} {name} failed: {detail}")


def _describe(e: DockerException) -> str:
    """Best single-line description of a docker CLI failure."""
    stderr = getattr(e, 'stderr', None)
    if stderr:
        lines = [line for line in str(stderr).strip().splitlines() if line.strip()]
        if lines:
            return lines[-1]
    return str(e).strip().splitlines()[0] if str(e).strip() else e.__class__.__name__


class DockerRuntime:
    """Thin wrapper over python-on-whales exposing the operations a deploy needs.

    Missing containers are reported through return values; every other
    docker failure is raised as ContainerRuntimeError.
    """

    def __init__(self, docker_host: Optional[str] = None, client: Optional[DockerClient] = None):
        self.docker_host = docker_host
        self.client = client or DockerClient(host=docker_host)

    def run(self, spec: ContainerSpec) -> str:
        """Start a detached container and return its id."""
        container_config = {
            "image": spec.image,
            "name": spec.name,
            "detach": True,
            "publish": spec.publish(),
            "envs": spec.environment,
            "labels": {**spec.labels, MANAGED_LABEL: MANAGED_VALUE},
            "restart": spec.restart_policy,
            "pull": spec.pull,
        }
        if spec.network:
            container_config["networks"] = [spec.network]

        try:
            container = self.client.run(**container_config)
        except DockerException as e:
            raise ContainerRuntimeError("run", spec.name, _describe(e)) from e
        return container.id

    def state(self, name: str) -> ContainerState:
        try:
            container = self.client.container.inspect(name)
        except NoSuchContainer:
            return ContainerState(name=name)
        except DockerException as e:
            raise ContainerRuntimeError("inspect", name, _describe(e)) from e

        return ContainerState(
            name=name,
            exists=True,
            running=bool(container.state.running),
            status=container.state.status,
            image=container.config.image,
            container_id=container.id,
        )

    def exists(self, name: str) -> bool:
        return self.state(name).exists

    def is_running(self, name: str) -> bool:
        return self.state(name).running

    def stop(self, name: str) -> bool:
        """Stop a container. Returns False if it does not exist."""
        try:
            self.client.container.stop(name)
        except NoSuchContainer:
            return False
        except DockerException as e:
            raise ContainerRuntimeError("stop", name, _describe(e)) from e
        return True

    def remove(self, name: str, force: bool = False) -> bool:
        """Remove a container. Returns False if it does not exist."""
        try:
            self.client.container.remove(name, force=force)
        except NoSuchContainer:
            return False
        except DockerException as e:
            raise ContainerRuntimeError("remove", name, _describe(e)) from e
        return True


class ContainerLauncher:
    """Starts the new slot's container."""

    def __init__(self, runtime, container_port: int = 3000, bind_address: str = "127.0.0.1",
                 environment: dict = None, network: Optional[str] = None,
                 restart_policy: str = "unless-stopped", pull: str = "missing"):
        self.runtime = runtime
        self.container_port = container_port
        self.bind_address = bind_address
        self.environment = environment or {}
        self.network = network
        self.restart_policy = restart_policy
        self.pull = pull

    def build_spec(self, target: DeploymentTarget, image: str, app_name: str) -> ContainerSpec:
        return ContainerSpec(
            name=target.container_name,
            image=image,
            host_port=target.port,
            container_port=self.container_port,
            bind_address=self.bind_address,
            environment=self.environment,
            labels={"bluegreen.app": app_name, "bluegreen.color": target.color.value},
            network=self.network,
            restart_policy=self.restart_policy,
            pull=self.pull,
        )

    async def launch(self, target: DeploymentTarget, image: str, app_name: str) -> str:
        """Start ``image`` as the container for ``target``.

        Any leftover container holding the target name is removed first, so a
        retry after a partial failure never produces duplicates.

        Returns:
            Container id

        Raises:
            LaunchError: If the runtime rejects the container or it exits immediately
        """
        spec = self.build_spec(target, image, app_name)

        try:
            if await run_blocking(self.runtime.remove, spec.name, force=True):
                logger.warning(f"Removed leftover container {spec.name} from an earlier attempt")
        except ContainerRuntimeError as e:
            raise LaunchError(f"Cannot clear leftover container {spec.name}: {e.detail}") from e

        logger.info(f"Starting {spec.name} from {image} on {spec.bind_address}:{spec.host_port}")
        try:
            container_id = await run_blocking(self.runtime.run, spec)
        except ContainerRuntimeError as e:
            await self.discard(target)
            raise LaunchError(f"Docker rejected {spec.name} ({image}): {e.detail}") from e

        try:
            running = await run_blocking(self.runtime.is_running, spec.name)
        except ContainerRuntimeError as e:
            await self.discard(target)
            raise LaunchError(f"Cannot inspect {spec.name} after start: {e.detail}") from e

        if not running:
            await self.discard(target)
            raise LaunchError(f"Container {spec.name} exited immediately after start")

        logger.info(f"Started container {container_id[:12]} as {spec.name}")
        return container_id

    async def discard(self, target: DeploymentTarget) -> bool:
        """Force-remove the container for ``target``; used on rollback.

        Returns:
            True if a container was removed, False if there was none or removal failed
        """
        try:
            removed = await run_blocking(self.runtime.remove, target.container_name, force=True)
        except ContainerRuntimeError as e:
            logger.error(f"Failed to remove container {target.container_name}: {e.detail}")
            return False
        if removed:
            logger.info(f"Removed container {target.container_name}")
        return removed


class InstanceReaper:
    """Stops and removes the previously active container after traffic has moved."""

    def __init__(self, runtime, drain_seconds: float = 0.0):
        self.runtime = runtime
        self.drain_seconds = drain_seconds

    async def reap(self, target: DeploymentTarget) -> bool:
        """Stop and remove ``target``'s container.

        A missing container is not an error.

        Returns:
            True if a container was removed

        Raises:
            ReaperError: On any other runtime failure
        """
        if self.drain_seconds > 0:
            logger.info(f"Draining {target.container_name} for {self.drain_seconds:g}s")
            await asyncio.sleep(self.drain_seconds)

        name = target.container_name
        try:
            if not await run_blocking(self.runtime.stop, name):
                logger.info(f"Container {name} does not exist; nothing to reap")
                return False
            removed = await run_blocking(self.runtime.remove, name)
        except ContainerRuntimeError as e:
            raise ReaperError(f"Failed to {e.operation} old container {name}: {e.detail}") from e

        logger.info(f"Stopped and removed old container {name}")
        return removed
