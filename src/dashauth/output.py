"""Terminal output for dashauth commands.

Two streams, two jobs:

* **stdout** carries only the result of a command -- the ``status``
  record, the ``scopes`` table, ``config show``. Scripts can pipe it.
* **stderr** carries everything addressed to the person at the terminal:
  the login URL, progress and success notes, warnings, errors, next-step
  hints, and records from the ``dashauth`` logger.

The format of stdout is chosen once per invocation: ``--json``, ``--plain``,
or automatic (Rich when stdout is a colour-capable terminal, plain text
otherwise). ``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all disable
colour.

Commands call the module-level helpers (:func:`info`, :func:`error`, ...),
which forward to the :class:`OutputManager` installed by
:func:`~dashauth.app.main_callback`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How command results are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class OutputManager:
    """Holds the per-invocation output settings and the two Rich consoles.

    Args:
        format: Requested stdout format. ``AUTO`` becomes ``RICH`` on a
            colour terminal and ``PLAIN`` otherwise.
        no_color: Never emit colour or markup.
        quiet: Drop info, success and hint messages. Warnings and errors
            are always shown.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console bound to stderr; also used by the log handler."""
        return self._stderr

    # -- results (stdout) ------------------------------------------------

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Write a record to stdout.

        JSON mode dumps it verbatim. Plain mode writes one ``key<TAB>value``
        line per dict entry, joining list values with spaces, so that
        ``cut -f2`` works. Rich mode pretty-prints dicts and lists as
        highlighted JSON.
        """
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json(data))
            return
        if self._format is OutputFormat.PLAIN:
            if isinstance(data, dict):
                for key, value in data.items():
                    if isinstance(value, (list, tuple)):
                        value = " ".join(str(v) for v in value)
                    self.print_data(f"{key}\t{value}")
            elif isinstance(data, list):
                for item in data:
                    self.print_data(str(item))
            else:
                self.print_data(str(data))
            return
        if isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout: a Rich table, a JSON array of objects, or TSV."""
        if self._format is OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2, ensure_ascii=False))
        elif self._format is OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # -- messages (stderr) -----------------------------------------------

    def _say(self, plain: str, styled: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(styled)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._say(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._say(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self._say(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._say(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Print a next-step hint such as ``dashauth login``."""
        if not self._quiet:
            self._say(f"→ {message}", f"[dim]→ {message}[/dim]")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._say(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")


def configure_logging(output: OutputManager) -> None:
    """Attach a single :class:`~rich.logging.RichHandler` to the ``dashauth`` logger.

    The threshold is WARNING, or DEBUG under ``--verbose``. ``--quiet``
    has no effect here, so a rejected callback ``state`` is always
    reported.
    """
    logger = logging.getLogger("dashauth")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    handler = RichHandler(
        console=output.stderr_console,
        show_time=output.is_verbose,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)
    logger.propagate = False


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`; a default one is created on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests use this between cases)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
