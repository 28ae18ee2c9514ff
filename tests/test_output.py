"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain format_response / print_table
- configure_logging wiring for the ``dashauth`` logger
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from dashauth.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("dashauth.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("dashauth.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("a message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "a message" in captured.err

    def test_prefixes_without_color(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.error("bad")
        mgr.warning("careful")
        mgr.suggest("dashauth login")
        err = capfd.readouterr().err
        assert "Error: bad" in err
        assert "Warning: careful" in err
        assert "→ dashauth login" in err


class TestQuietAndVerbose:
    @pytest.mark.parametrize("method", ["info", "success", "suggest"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("hidden")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_keeps_problems(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("visible")
        assert "visible" in capfd.readouterr().err

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("shown")
        assert "[debug] shown" in capfd.readouterr().err


class TestFormatResponse:
    def test_json_dict(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"logged_in": True, "expires_at": None})
        assert json.loads(capfd.readouterr().out) == {"logged_in": True, "expires_at": None}

    def test_plain_dict_is_tab_separated(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"client_id": "abc", "scopes": ["zone:read", "user:read"]})
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["client_id\tabc", "scopes\tzone:read user:read"]


class TestPrintTable:
    def test_plain(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Field", "Value"], [["Logged in", "yes"]])
        assert capfd.readouterr().out == "Field\tValue\nLogged in\tyes\n"

    def test_json(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["Scope", "Requested"], [["zone:read", "yes"]])
        assert json.loads(capfd.readouterr().out) == [{"Scope": "zone:read", "Requested": "yes"}]

    def test_rich_includes_title(self, capfd, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Field", "Value"], [["Expired", "no"]], title="Login Status")
        out = capfd.readouterr().out
        assert "Login Status" in out
        assert "Expired" in out


class TestConfigureLogging:
    def test_warning_level_by_default(self, non_tty):
        configure_logging(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        logger = logging.getLogger("dashauth")
        assert logger.level == logging.WARNING
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_verbose_enables_debug(self, non_tty):
        configure_logging(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        assert logging.getLogger("dashauth").level == logging.DEBUG

    def test_repeated_calls_do_not_stack_handlers(self, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        configure_logging(mgr)
        configure_logging(mgr)
        assert len(logging.getLogger("dashauth").handlers) == 1

    def test_records_reach_stderr(self, capfd, non_tty):
        configure_logging(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        logging.getLogger("dashauth.auth.callback").warning("state mismatch")
        captured = capfd.readouterr()
        assert "state mismatch" in captured.err
        assert captured.out == ""


class TestGlobalInstance:
    def test_get_creates_default(self, non_tty):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_reset(self, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr
