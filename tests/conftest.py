"""Pytest fixtures: in-memory container runtime and proxy controller, temp proxy configs."""

from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

from bluegreen.docker.manager import ContainerRuntimeError
from bluegreen.docker.models import ContainerSpec, ContainerState
from bluegreen.health.models import ProbeSettings
from bluegreen.orchestration.deployer import BlueGreenDeployer
from bluegreen.orchestration.models import DeploymentSettings
from bluegreen.proxy.controller import ProxyCommandError

NGINX_UPSTREAM_CONF = """\
# Managed by bluegreen
upstream web_backend {
    server 127.0.0.1:{port} max_fails=3 fail_timeout=10s;
}

server {
    listen 443 ssl;
    server_name app.example.com;

    location / {
        proxy_pass http://web_backend;
        proxy_set_header Host $host;
    }
}
"""

NGINX_PROXY_PASS_CONF = """\
server {
    listen 80;
    server_name app.example.com;

    location / {
        # proxy_pass http://localhost:3002;
        proxy_pass http://localhost:{port};
        proxy_http_version 1.1;
    }
}
"""


def render_conf(template: str, port: int) -> str:
    return template.replace("{port}", str(port))


class FakeRuntime:
    """In-memory stand-in for DockerRuntime that records every call."""

    def __init__(self, events: List[str]):
        self.events = events
        self.containers: Dict[str, ContainerState] = {}
        self.specs: Dict[str, ContainerSpec] = {}
        self.run_error: Optional[str] = None
        self.exit_on_start = False
        self.stop_error: Optional[str] = None
        self.remove_error: Optional[str] = None
        self._next_id = 0

    def add_running(self, name: str, image: str = "acme/web:1.0") -> None:
        self._next_id += 1
        self.containers[name] = ContainerState(
            name=name, exists=True, running=True, status="running",
            image=image, container_id=f"{self._next_id:064x}"
        )

    def run(self, spec: ContainerSpec) -> str:
        self.events.append(f"run:{spec.name}")
        if self.run_error:
            raise ContainerRuntimeError("run", spec.name, self.run_error)
        if spec.name in self.containers:
            raise ContainerRuntimeError("run", spec.name, "Conflict. The container name is already in use")
        self.add_running(spec.name, spec.image)
        self.specs[spec.name] = spec
        if self.exit_on_start:
            state = self.containers[spec.name]
            state.running = False
            state.status = "exited"
        return self.containers[spec.name].container_id

    def state(self, name: str) -> ContainerState:
        return self.containers.get(name, ContainerState(name=name))

    def exists(self, name: str) -> bool:
        return name in self.containers

    def is_running(self, name: str) -> bool:
        return self.state(name).running

    def stop(self, name: str) -> bool:
        self.events.append(f"stop:{name}")
        if self.stop_error:
            raise ContainerRuntimeError("stop", name, self.stop_error)
        if name not in self.containers:
            return False
        self.containers[name].running = False
        self.containers[name].status = "exited"
        return True

    def remove(self, name: str, force: bool = False) -> bool:
        self.events.append(f"remove:{name}")
        if self.remove_error:
            raise ContainerRuntimeError("remove", name, self.remove_error)
        if name not in self.containers:
            return False
        if self.containers[name].running and not force:
            raise ContainerRuntimeError("remove", name, "container is running")
        del self.containers[name]
        return True


class FakeController:
    """Proxy controller double; validate/reload succeed unless told otherwise."""

    def __init__(self, events: List[str]):
        self.events = events
        self.validate_error: Optional[str] = None
        self.reload_errors: List[Optional[str]] = []
        self.validate_calls = 0
        self.reload_calls = 0

    def validate(self) -> str:
        self.validate_calls += 1
        self.events.append("validate")
        if self.validate_error:
            raise ProxyCommandError(["nginx", "-t"], self.validate_error, 1)
        return "syntax is ok"

    def reload(self) -> str:
        self.reload_calls += 1
        self.events.append("reload")
        if self.reload_errors:
            error = self.reload_errors.pop(0)
            if error:
                raise ProxyCommandError(["nginx", "-s", "reload"], error, 1)
        return ""


def status_transport(*statuses: int) -> httpx.MockTransport:
    """Transport answering with the given status codes in turn, repeating the last one."""
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(status, text="ok" if status < 400 else "starting")

    return httpx.MockTransport(handler)


@pytest.fixture
def events() -> List[str]:
    return []


@pytest.fixture
def runtime(events) -> FakeRuntime:
    """Runtime with the blue slot already serving."""
    fake = FakeRuntime(events)
    fake.add_running("web-blue", "acme/web:1.0")
    return fake


@pytest.fixture
def controller(events) -> FakeController:
    return FakeController(events)


@pytest.fixture
def proxy_config(tmp_path) -> Path:
    """Upstream config with blue (3001) live."""
    path = tmp_path / "app.conf"
    path.write_text(render_conf(NGINX_UPSTREAM_CONF, 3001))
    return path


@pytest.fixture
def fast_probe() -> ProbeSettings:
    return ProbeSettings(interval=0.01, request_timeout=0.1, timeout=0.3, path="/healthz")


@pytest.fixture
def settings(proxy_config, fast_probe) -> DeploymentSettings:
    return DeploymentSettings(
        app_name="web",
        proxy_config=proxy_config,
        probe=fast_probe,
        deploy_timeout=5,
    )


@pytest.fixture
def make_deployer(settings, runtime, controller):
    """Build a deployer wired to the fakes; pass a transport to script probe answers."""
    def _make(transport: httpx.MockTransport = None, **overrides) -> BlueGreenDeployer:
        deploy_settings = settings.model_copy(update=overrides) if overrides else settings
        return BlueGreenDeployer(
            deploy_settings,
            runtime=runtime,
            controller=controller,
            transport=transport or status_transport(200)
        )
    return _make
