"""Tests for ``dashauth config show|set|reset``."""

from __future__ import annotations

import json
from pathlib import Path

from dashauth.config import config_path, load_config, save_config
from dashauth.models import ProviderConfig, Scope


class TestConfigShow:
    def test_defaults_as_json(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["--json", "-q", "config", "show"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["callback_port"] == 8976
        assert data["redirect_uri"] == "http://localhost:8976/oauth/callback"
        assert "offline_access" not in data["scopes"]

    def test_env_override_visible(self, cli_runner, cli_app, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setenv("DASHAUTH_CALLBACK_PORT", "9100")
        result = cli_runner.invoke(cli_app, ["--json", "-q", "config", "show"])
        data = json.loads(result.stdout)
        assert data["callback_port"] == 9100
        assert data["redirect_uri"] == "http://localhost:9100/oauth/callback"


class TestConfigSet:
    def test_set_int(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["--no-color", "config", "set", "callback_port", "9000"])
        assert result.exit_code == 0, result.output
        assert load_config().callback_port == 9000

    def test_set_float(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["config", "set", "request_timeout", "12.5"])
        assert result.exit_code == 0, result.output
        assert load_config().request_timeout == 12.5

    def test_set_scopes(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["config", "set", "scopes", "zone:read user:read"])
        assert result.exit_code == 0, result.output
        assert load_config().scopes == [Scope.ZONE_READ, Scope.USER_READ]

    def test_set_string(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["config", "set", "client_id", "my-client"])
        assert result.exit_code == 0, result.output
        assert load_config().client_id == "my-client"

    def test_unknown_key(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["--no-color", "config", "set", "nope", "1"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_bad_int(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["config", "set", "callback_port", "abc"])
        assert result.exit_code == 2
        assert not config_path().exists()

    def test_out_of_range(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["--no-color", "config", "set", "callback_port", "70000"])
        assert result.exit_code == 2
        assert "Validation error" in result.output

    def test_unknown_scope(self, cli_runner, cli_app, isolated_config: Path) -> None:
        result = cli_runner.invoke(cli_app, ["config", "set", "scopes", "dns:edit"])
        assert result.exit_code == 2

    def test_env_not_persisted(self, cli_runner, cli_app, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setenv("DASHAUTH_CLIENT_ID", "from-env")
        cli_runner.invoke(cli_app, ["config", "set", "callback_port", "9001"])
        data = json.loads(config_path().read_text(encoding="utf-8"))
        assert data["client_id"] != "from-env"
        assert data["callback_port"] == 9001


class TestConfigReset:
    def test_reset_with_force(self, cli_runner, cli_app, isolated_config: Path) -> None:
        save_config(ProviderConfig(callback_port=9999))
        result = cli_runner.invoke(cli_app, ["--force", "config", "reset"])
        assert result.exit_code == 0, result.output
        assert load_config().callback_port == 8976

    def test_reset_declined(self, cli_runner, cli_app, isolated_config: Path) -> None:
        save_config(ProviderConfig(callback_port=9999))
        result = cli_runner.invoke(cli_app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        assert load_config().callback_port == 9999

    def test_reset_confirmed(self, cli_runner, cli_app, isolated_config: Path) -> None:
        save_config(ProviderConfig(callback_port=9999))
        result = cli_runner.invoke(cli_app, ["config", "reset"], input="y\n")
        assert result.exit_code == 0
        assert load_config().callback_port == 8976
