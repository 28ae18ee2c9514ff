"""The ``dashauth`` command line: root options, command wiring, entry point.

``main`` is what the console script runs. Known failures
(:class:`~dashauth.exceptions.DashauthError`) become a one-line message
and the error's exit code; anything else leaves a traceback under
``<data dir>/logs`` so that the terminal stays readable.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from dashauth import __version__
from dashauth.exit_codes import EXIT_GENERIC_FAILURE

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="dashauth",
    help="Log in to the dashboard with OAuth 2.0 and manage the stored tokens.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _show_version(requested: bool) -> None:
    if requested:
        typer.echo(f"dashauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Print the dashauth version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Write results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Write results as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug messages and log records."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Set up output and logging for the command that follows."""
    from dashauth.output import OutputFormat, OutputManager, configure_logging, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.obj = {**(ctx.obj or {}), "force": force, "verbose": verbose}


def register_commands(target: typer.Typer) -> None:
    """Attach the auth commands and the ``config`` group to *target*."""
    from dashauth.commands import auth
    from dashauth.commands.config import config_app

    for name, command in (
        ("login", auth.login_command),
        ("logout", auth.logout_command),
        ("refresh", auth.refresh_command),
        ("status", auth.status_command),
        ("scopes", auth.scopes_command),
    ):
        target.command(name)(command)
    target.add_typer(config_app, name="config", help="Show or change the provider settings.")


def _interrupted() -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _setup_signal_handlers() -> None:
    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        _interrupted()

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log() -> Path:
    """Save the traceback being handled and return where it went."""
    from dashauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc())
    return path


def main() -> None:
    """Console-script entry point. Always ends in :class:`SystemExit`."""
    from dashauth.exceptions import DashauthError
    from dashauth.output import error

    _setup_signal_handlers()
    try:
        register_commands(app)
        app()
    except KeyboardInterrupt:
        _interrupted()
    except DashauthError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
