"""Shared test fixtures for slidecli.

Provides reusable fixtures for isolated home directories, settings,
credential records, free loopback ports, output state, and running CLI
commands. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import logging
import socket
import time
from pathlib import Path

import pytest

from slidecli.auth.credential_store import CredentialStore
from slidecli.models import AuthSettings, CredentialSet
from slidecli.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.  The same applies to the Rich logging
    handler installed by ``configure_logging``, so the package logger is
    returned to its default propagating state as well.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("slidecli")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``SLIDECLI_HOME`` at a temporary directory.

    Clears every other ``SLIDECLI_*`` variable so that tests never read
    the developer's real configuration or credentials.

    Returns:
        The isolated home directory (not yet created).
    """
    home = tmp_path / "home"
    monkeypatch.setenv("SLIDECLI_HOME", str(home))
    for var in [
        "SLIDECLI_CALLBACK_PORT",
        "SLIDECLI_TOKEN_PATH",
        "SLIDECLI_CLIENT_ID",
        "SLIDECLI_CLIENT_SECRET",
    ]:
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def free_port() -> int:
    """Return a loopback TCP port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# Auth fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path, free_port: int) -> AuthSettings:
    """Settings with a test client, a free port and a temp credential file."""
    return AuthSettings(
        client_id="test-client.apps.googleusercontent.com",
        client_secret="test-secret",
        callback_port=free_port,
        token_path=str(tmp_path / "creds" / "tokens.json"),
        callback_timeout=5.0,
        open_browser=False,
    )


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    return CredentialStore(tmp_path / "creds" / "tokens.json")


def _credentials(
    expires_in_ms: int = 3_600_000,
    access_token: str = "ya29.access",
    refresh_token: str = "1//refresh",
    scope: str = "https://www.googleapis.com/auth/presentations",
) -> CredentialSet:
    return CredentialSet(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(time.time() * 1000) + expires_in_ms,
        scope=scope,
    )


@pytest.fixture
def make_credentials():
    """Factory building a credential set expiring *expires_in_ms* from now."""
    return _credentials


@pytest.fixture
def valid_credentials() -> CredentialSet:
    """Credentials that expire in one hour."""
    return _credentials()


@pytest.fixture
def expiring_credentials() -> CredentialSet:
    """Credentials that expire in one minute, inside the refresh buffer."""
    return _credentials(expires_in_ms=60_000, access_token="ya29.stale")


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output.

    Installs a PLAIN-format, quiet OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner with the built-in commands registered."""
    from typer.testing import CliRunner

    from slidecli.app import register_commands

    register_commands()
    return CliRunner()
