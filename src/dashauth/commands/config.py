"""``dashauth config``: inspect and edit ``config.json``.

The file holds the provider endpoints, the client id, the local callback
address and the scopes requested at login. See
:class:`~dashauth.models.ProviderConfig` for the fields and their defaults.
"""

from __future__ import annotations

from typing import Any, NoReturn

import typer

from dashauth.exit_codes import EXIT_INVALID_USAGE
from dashauth.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _fail(message: str) -> NoReturn:
    error(message)
    raise typer.Exit(code=EXIT_INVALID_USAGE)


def _coerce(key: str, raw: str, like: Any) -> Any:
    """Turn *raw* into the type of the value it replaces."""
    if isinstance(like, list):
        return raw.split()
    for kind, label in ((int, "integer"), (float, "number")):
        if isinstance(like, kind):
            try:
                return kind(raw)
            except ValueError:
                _fail(f"Expected {label} for {key}, got: {raw}")
    return raw


@config_app.command("show")
def config_show() -> None:
    """Print the settings in effect, environment overrides included.

    Example::

        dashauth --json config show
    """
    from dashauth.config import config_path, load_config

    config = load_config()
    info(f"Config file: {config_path()}")
    format_response({**config.model_dump(mode="json"), "redirect_uri": config.redirect_uri})


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Field name, e.g. 'callback_port'."),
    value: str = typer.Argument(help="New value. Separate scopes with spaces."),
) -> None:
    """Change one field of ``config.json``.

    Only the file is edited; ``DASHAUTH_*`` variables set in the
    environment are neither read nor saved here. Exits with code 2 when
    the key is unknown or the new value does not validate.

    Example::

        dashauth config set callback_port 9000
        dashauth config set scopes "account:read user:read"
    """
    from dashauth.config import load_config, save_config
    from dashauth.models import ProviderConfig

    current = load_config(use_env=False).model_dump(mode="json")
    if key not in current:
        _fail(f"Unknown config key: {key}")

    current[key] = _coerce(key, value, current[key])
    try:
        updated = ProviderConfig.model_validate(current)
    except ValueError as exc:
        _fail(f"Validation error: {exc}")

    save_config(updated)
    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Put every field back to its default. ``--force`` skips the prompt."""
    from dashauth.config import save_config
    from dashauth.models import ProviderConfig

    if not (ctx.obj or {}).get("force") and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_config(ProviderConfig())
    success("Configuration reset to defaults.")
