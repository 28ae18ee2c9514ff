"""Where dashauth keeps its files, and how the provider settings are resolved.

Linux and the BSDs follow the XDG base directories: settings live in
``$XDG_CONFIG_HOME/dashauth`` and credentials and crash logs in
``$XDG_DATA_HOME/dashauth``. Everywhere else both go under ``~/.dashauth``.

Provider settings come from three layers, highest first: ``DASHAUTH_*``
environment variables, ``config.json``, then the defaults baked into
:class:`~dashauth.models.ProviderConfig`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from dashauth.exceptions import ConfigError
from dashauth.models import ProviderConfig

_APP_NAME = "dashauth"
_CONFIG_FILENAME = "config.json"

ENV_OVERRIDES: dict[str, str] = {
    "DASHAUTH_CLIENT_ID": "client_id",
    "DASHAUTH_AUTH_URL": "authorization_url",
    "DASHAUTH_TOKEN_URL": "token_url",
    "DASHAUTH_REVOKE_URL": "revoke_url",
    "DASHAUTH_CALLBACK_PORT": "callback_port",
}
"""Environment variable -> :class:`ProviderConfig` field."""


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _xdg_home(env_var: str, *default: str) -> Path:
    return Path(os.environ.get(env_var) or Path.home().joinpath(*default))


def get_config_dir() -> Path:
    """Directory holding ``config.json``. Created on first use."""
    if _is_xdg_platform():
        return _ensure_dir(_xdg_home("XDG_CONFIG_HOME", ".config") / _APP_NAME)
    return _ensure_dir(Path.home() / f".{_APP_NAME}")


def get_data_dir() -> Path:
    """Directory holding ``credentials.json`` and ``logs/``. Created on first use."""
    if _is_xdg_platform():
        return _ensure_dir(_xdg_home("XDG_DATA_HOME", ".local", "share") / _APP_NAME)
    return _ensure_dir(Path.home() / f".{_APP_NAME}" / "data")


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* so readers see either the old or the new file.

    The content goes to a sibling temp file that is fsynced and then
    renamed over *path*. With *mode*, the temp file gets its permissions
    before anything is written to it. The temp file is removed if any
    step fails.
    """
    _ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def load_config(use_env: bool = True) -> ProviderConfig:
    """Build the effective :class:`ProviderConfig`.

    ``use_env=False`` skips the environment layer; ``config set`` relies on
    that so an exported variable never ends up saved to disk.

    Raises:
        ConfigError: ``config.json`` is unreadable, or a value is invalid.
    """
    data = _read_config_file(config_path())
    if use_env:
        data.update({field: os.environ[var] for var, field in ENV_OVERRIDES.items() if os.environ.get(var)})
    try:
        return ProviderConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def save_config(config: ProviderConfig) -> None:
    _atomic_write(config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")
