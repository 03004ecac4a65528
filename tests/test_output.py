"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline, including the login URL
- Quiet mode
- format_response and print_table in each format
- Logging configuration
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest

from slidecli import output as output_module
from slidecli.output import (
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
    monkeypatch.setattr("slidecli.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("slidecli.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("ya29.token")
        captured = capfd.readouterr()
        assert captured.out == "ya29.token\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_show_url_is_unwrapped_on_stderr(self, capfd, non_tty):
        url = "https://accounts.google.com/o/oauth2/v2/auth?" + "x=1&" * 60
        OutputManager(format=OutputFormat.RICH).show_url(url)
        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == url + "\n"


class TestQuietMode:
    @pytest.mark.parametrize("method", ["info", "success", "suggest"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("should not appear")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error", "show_url"])
    def test_quiet_keeps(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("must appear")
        assert "must appear" in capfd.readouterr().err


class TestFormatResponse:
    def test_dict_as_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"callback_port": 8085})
        assert json.loads(capfd.readouterr().out) == {"callback_port": 8085}

    def test_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"callback_port": 8085, "redirect_path": "/callback"}
        )
        assert capfd.readouterr().out == "callback_port\t8085\nredirect_path\t/callback\n"

    def test_rich_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH).format_response({"key": "value"})
        assert "key" in capfd.readouterr().out


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["Field", "Value"], [["Scope", "s"]])
        assert json.loads(capfd.readouterr().out) == [{"Field": "Scope", "Value": "s"}]

    def test_table_plain_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(
            ["Field", "Value"], [["Scope", "s"]], title="ignored"
        )
        assert capfd.readouterr().out == "Field\tValue\nScope\ts\n"

    def test_table_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH).print_table(["Field", "Value"], [["Scope", "s"]])
        out = capfd.readouterr().out
        assert "Field" in out
        assert "Scope" in out


class TestConfigureLogging:
    def test_warning_level_by_default(self):
        configure_logging()
        logger = logging.getLogger("slidecli")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_debug_level_when_verbose(self):
        configure_logging(verbose=True)
        assert logging.getLogger("slidecli").level == logging.DEBUG

    def test_reconfigure_replaces_handler(self):
        configure_logging()
        configure_logging(verbose=True)
        assert len(logging.getLogger("slidecli").handlers) == 1

    def test_records_reach_stderr(self, capfd):
        configure_logging(no_color=True)
        logging.getLogger("slidecli.auth.oauth_client").warning("refresh failed")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "refresh failed" in captured.err


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_get(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_convenience_functions_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("data line")
        output_module.error("bad thing")
        captured = capfd.readouterr()
        assert captured.out == "data line\n"
        assert "Error: bad thing" in captured.err
