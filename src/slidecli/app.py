"""Typer application and CLI entry point for slidecli.

This module wires together the top-level Typer application and registers
the built-in sub-command groups (``auth``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. Unhandled exceptions are written to a crash log
under the slidecli home directory.

See Also:
    :mod:`slidecli.config`: Settings resolution.
    :mod:`slidecli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from slidecli import __version__
from slidecli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="slidecli",
    help="Work with Google Slides from the command line.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"slidecli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="Loopback port for the OAuth redirect."
    ),
    token_path: Optional[str] = typer.Option(
        None, "--token-path", help="Credential file location."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~slidecli.output.OutputManager` and
    logging from CLI flags, and stores the settings overrides (``port``,
    ``token_path``) and ``force`` in the Typer context so that
    sub-commands can read them via ``ctx.obj``.
    """
    from slidecli.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    configure_logging(verbose=verbose, no_color=no_color)

    ctx.ensure_object(dict)
    ctx.obj["port"] = port
    ctx.obj["token_path"] = token_path
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly.

    The resulting :class:`SystemExit` unwinds through an in-flight login,
    which stops its redirect listener on the way out.
    """

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from slidecli.config import get_home_dir

    logs_dir = get_home_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in sub-command groups to :data:`app` (idempotent)."""
    from slidecli.commands.auth import auth_app
    from slidecli.commands.config import config_app

    registered = {group.name for group in app.registered_groups}
    if "auth" not in registered:
        app.add_typer(auth_app, name="auth", help="Sign in and manage stored credentials.")
    if "config" not in registered:
        app.add_typer(config_app, name="config", help="Configuration management.")


def main() -> None:
    """CLI entry point invoked by the ``slidecli`` console script.

    Unhandled :class:`~slidecli.exceptions.SlidecliError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from slidecli.exceptions import SlidecliError
        from slidecli.output import error

        if isinstance(exc, SlidecliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
