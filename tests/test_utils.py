"""Tests for shared helpers and deployment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from bluegreen.orchestration import DeploymentPhase, DeploymentResult, DeploymentSettings
from bluegreen.ports import Color
from bluegreen.shared import Config, format_duration, get_config, parse_duration
from bluegreen.shared.errors import HealthCheckTimeout
from bluegreen.shared.utils import parse_env_pairs


class TestParseDuration:
    """Test duration parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("90", 90.0),
        ("90s", 90.0),
        ("5m", 300.0),
        ("1h", 3600.0),
        ("1m30s", 90.0),
        ("250ms", 0.25),
        ("1.5s", 1.5),
        (45, 45.0),
    ])
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "soon", "5x", "1m1m", -1])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_format(self):
        assert format_duration(0.25) == "250ms"
        assert format_duration(12.34) == "12.3s"
        assert format_duration(90) == "1m30s"
        assert format_duration(3700) == "1h01m"


class TestParseEnvPairs:
    """Test KEY=value parsing."""

    def test_values_may_contain_equals(self):
        assert parse_env_pairs(["A=1", "URL=postgres://u:p@db/app?x=y"]) == {
            "A": "1",
            "URL": "postgres://u:p@db/app?x=y",
        }

    def test_empty_value_allowed(self):
        assert parse_env_pairs(["EMPTY="]) == {"EMPTY": ""}

    @pytest.mark.parametrize("pair", ["NOVALUE", "=value"])
    def test_invalid(self, pair):
        with pytest.raises(ValueError):
            parse_env_pairs([pair])


class TestDeploymentSettings:
    """Test settings built from configuration plus overrides."""

    def test_from_config_defaults(self):
        settings = DeploymentSettings.from_config(Config())

        assert settings.ports.port_for(Color.BLUE) == Config.BLUE_PORT
        assert settings.deploy_timeout == parse_duration(Config.DEPLOY_TIMEOUT)
        assert settings.probe.path == Config.PROBE_PATH

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        settings = DeploymentSettings.from_config(
            Config(),
            probe_overrides={"path": "/ready", "timeout": None},
            proxy_config=tmp_path / "app.conf",
            green_port=4002,
            network=None,
            deploy_timeout="90s",
        )

        assert settings.probe.path == "/ready"
        assert settings.probe.timeout == parse_duration(Config.PROBE_TIMEOUT)
        assert settings.ports.port_for(Color.GREEN) == 4002
        assert settings.deploy_timeout == 90.0
        assert settings.lock_path == (tmp_path / "app.conf").resolve().with_name("app.conf.lock")

    def test_invalid_app_name(self):
        with pytest.raises(ValidationError):
            DeploymentSettings(app_name="My App")

    def test_lock_path_follows_symlink(self, tmp_path):
        real = tmp_path / "real.conf"
        real.write_text("")
        link = tmp_path / "link.conf"
        link.symlink_to(real)

        assert DeploymentSettings(proxy_config=Path(link)).lock_path == real.resolve().with_name("real.conf.lock")


class TestDeploymentResult:
    """Test phase bookkeeping."""

    def test_illegal_transition(self):
        result = DeploymentResult(image="acme/web:2.0")

        with pytest.raises(RuntimeError):
            result.transition(DeploymentPhase.SWITCHING)

    def test_fail_uses_error_metadata(self):
        result = DeploymentResult(image="acme/web:2.0")
        result.transition(DeploymentPhase.LAUNCHING)
        result.transition(DeploymentPhase.PROBING)

        result.fail(HealthCheckTimeout("no answer"))

        assert not result.succeeded
        assert result.failed_stage == "health probe"
        assert result.exit_code == 5


class TestConfig:
    """Test environment configuration validation."""

    @pytest.fixture(autouse=True)
    def fresh_config(self):
        get_config.cache_clear()
        yield
        get_config.cache_clear()

    def test_defaults_are_valid(self):
        Config.validate()

    def test_malformed_port_reported(self, monkeypatch):
        monkeypatch.setattr(Config, "BLUE_PORT", "30o1")

        with pytest.raises(ValueError, match="BLUEGREEN_BLUE_PORT must be an integer"):
            get_config()

    def test_equal_ports_rejected(self, monkeypatch):
        monkeypatch.setattr(Config, "GREEN_PORT", Config.BLUE_PORT)

        with pytest.raises(ValueError, match="must differ"):
            Config.validate()
