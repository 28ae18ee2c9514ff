"""Shared test fixtures for dashauth.

Provides isolated config/data directories, a fresh session and provider
config, quiet output, and a Typer CLI runner. These fixtures are
automatically discovered by pytest.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from dashauth.auth.session import SessionState
from dashauth.models import ProviderConfig
from dashauth.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test, the cached references become stale once the test finishes.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_dashauth_logger() -> None:
    """Undo :func:`~dashauth.output.configure_logging` so ``caplog`` sees records."""
    yield
    logger = logging.getLogger("dashauth")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and credentials to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    forces XDG path resolution, and clears all DASHAUTH_* overrides.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("dashauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "DASHAUTH_CLIENT_ID",
        "DASHAUTH_AUTH_URL",
        "DASHAUTH_TOKEN_URL",
        "DASHAUTH_REVOKE_URL",
        "DASHAUTH_CALLBACK_PORT",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Protocol fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> SessionState:
    """A fresh, empty session."""
    return SessionState()


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provider config pointing at example endpoints."""
    return ProviderConfig(
        client_id="test-client",
        authorization_url="https://auth.example.com/oauth2/auth",
        token_url="https://auth.example.com/oauth2/token",
        revoke_url="https://auth.example.com/oauth2/revoke",
        callback_host="127.0.0.1",
        callback_port=8976,
    )


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_app():
    """A fresh root Typer app with the built-in commands registered."""
    import typer

    from dashauth.app import main_callback, register_commands

    app = typer.Typer(no_args_is_help=True, add_completion=False)
    app.callback()(main_callback)
    register_commands(app)
    return app
