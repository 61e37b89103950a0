"""Tests for the bluegreen command line."""

import json
import logging

import pytest
from click.testing import CliRunner

from bluegreen.cli import cli
from bluegreen.cli.commands import deploy as deploy_module
from bluegreen.cli.commands import status as status_module
from bluegreen.shared import Config, get_config

from conftest import NGINX_UPSTREAM_CONF, render_conf, status_transport


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def probe_answers():
    """Mutable list of probe status codes handed to the deployer."""
    return [200]


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's streams once the test ends."""
    yield
    logger = logging.getLogger("bluegreen")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def fake_deployer(monkeypatch, runtime, controller, probe_answers):
    """Route CLI-built deployers to the fake runtime and proxy controller."""
    real = deploy_module.BlueGreenDeployer

    def factory(settings):
        return real(settings, runtime=runtime, controller=controller,
                    transport=status_transport(*probe_answers))

    monkeypatch.setattr(deploy_module, "BlueGreenDeployer", factory)
    monkeypatch.setattr(status_module, "BlueGreenDeployer", factory)


class TestDeployCommand:
    """Test deploy exit codes and output."""

    def test_success(self, runner, proxy_config, runtime):
        result = runner.invoke(cli, ["deploy", "--image", "acme/web:2.0", "--config", str(proxy_config)])

        assert result.exit_code == 0, result.output
        assert "Deployed acme/web:2.0" in result.output
        assert proxy_config.read_text() == render_conf(NGINX_UPSTREAM_CONF, 3002)
        assert runtime.is_running("web-green")

    def test_env_passed_to_container(self, runner, proxy_config, runtime):
        result = runner.invoke(cli, [
            "deploy", "--image", "acme/web:2.0", "--config", str(proxy_config),
            "-e", "NODE_ENV=production", "--env", "GREETING=a=b"
        ])

        assert result.exit_code == 0, result.output
        assert runtime.specs["web-green"].environment == {"NODE_ENV": "production", "GREETING": "a=b"}

    def test_probe_timeout_exit_code(self, runner, proxy_config, runtime, probe_answers):
        probe_answers[:] = [503]
        before = proxy_config.read_bytes()

        result = runner.invoke(cli, [
            "deploy", "--image", "acme/web:2.0", "--config", str(proxy_config),
            "--probe-interval", "10ms", "--probe-timeout", "200ms"
        ])

        assert result.exit_code == 5
        assert "health probe" in result.output
        assert proxy_config.read_bytes() == before
        assert runtime.is_running("web-blue")
        assert not runtime.exists("web-green")

    def test_unparseable_config_exit_code(self, runner, tmp_path):
        path = tmp_path / "broken.conf"
        path.write_text("upstream app {\n}\n")

        result = runner.invoke(cli, ["deploy", "--image", "acme/web:2.0", "--config", str(path)])

        assert result.exit_code == 3
        assert "no changes were made" in result.output

    def test_json_output(self, runner, proxy_config):
        result = runner.invoke(cli, [
            "--log-level", "CRITICAL",
            "deploy", "--image", "acme/web:2.0", "--config", str(proxy_config), "--json"
        ])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["target"]["color"] == "green"
        assert payload["previous"]["port"] == 3001
        assert payload["exit_code"] == 0

    def test_custom_ports(self, runner, tmp_path, runtime):
        path = tmp_path / "app.conf"
        path.write_text(render_conf(NGINX_UPSTREAM_CONF, 8001))

        result = runner.invoke(cli, [
            "deploy", "--image", "acme/web:2.0", "--config", str(path),
            "--blue-port", "8001", "--green-port", "8002"
        ])

        assert result.exit_code == 0, result.output
        assert path.read_text() == render_conf(NGINX_UPSTREAM_CONF, 8002)

    @pytest.mark.parametrize("args", [
        ["--timeout", "soon"],
        ["--env", "NO_EQUALS_SIGN"],
        ["--blue-port", "3002"],
        ["--app-name", "Web App"],
    ])
    def test_usage_errors(self, runner, proxy_config, args):
        result = runner.invoke(cli, ["deploy", "--image", "acme/web:2.0", "--config", str(proxy_config)] + args)

        assert result.exit_code == 2

    def test_image_required(self, runner, proxy_config):
        result = runner.invoke(cli, ["deploy", "--config", str(proxy_config)])
        assert result.exit_code == 2


class TestStatusCommand:
    """Test status reporting."""

    def test_table(self, runner, proxy_config):
        result = runner.invoke(cli, ["status", "--config", str(proxy_config)])

        assert result.exit_code == 0, result.output
        assert "Live slot" in result.output
        assert "web-blue" in result.output
        assert "absent" in result.output

    def test_json(self, runner, proxy_config):
        result = runner.invoke(cli, ["--log-level", "CRITICAL", "status", "--config", str(proxy_config), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["active"]["color"] == "blue"
        assert [slot["live"] for slot in payload["slots"]] == [True, False]

    def test_broken_config(self, runner, tmp_path):
        path = tmp_path / "app.conf"
        path.write_text("# nothing here\n")

        result = runner.invoke(cli, ["status", "--config", str(path)])

        assert result.exit_code == 3


def test_malformed_environment_is_a_usage_error(runner, monkeypatch, proxy_config):
    monkeypatch.setattr(Config, "BLUE_PORT", "blue")
    get_config.cache_clear()
    try:
        result = runner.invoke(cli, ["status", "--config", str(proxy_config)])
    finally:
        get_config.cache_clear()

    assert result.exit_code == 2
    assert "BLUEGREEN_BLUE_PORT must be an integer" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "bluegreen" in result.output
