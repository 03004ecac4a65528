"""Persistent credential store for the signed-in user.

Stores one :class:`~slidecli.models.CredentialSet` as JSON at a single
path (default ``~/.slidecli/tokens.json``). Files are written atomically
via :func:`slidecli.config.atomic_write` with ``0o600`` permissions, and
missing parent directories are created ``0o700``, so secrets are never
readable by other users, even momentarily.

Loading never raises: an absent, unreadable or incomplete file is logged
and reported as "no credentials", which sends the orchestrator into the
interactive flow.

See Also:
    :class:`~slidecli.auth.oauth_client.Authenticator` -- the only writer.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Optional

from slidecli.config import atomic_write
from slidecli.models import CredentialSet

logger = logging.getLogger(__name__)

_FILE_MODE = 0o600
_DIR_MODE = 0o700


def _ensure_private_dir(path: Path) -> None:
    """Create *path* and any missing ancestors with owner-only permissions."""
    missing: list[Path] = []
    current = path
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent
    for directory in reversed(missing):
        directory.mkdir(mode=_DIR_MODE, exist_ok=True)
        # mkdir's mode is filtered through the umask
        os.chmod(directory, _DIR_MODE)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def is_expiring(
    credentials: CredentialSet,
    buffer_minutes: float = 5,
    now: Optional[int] = None,
) -> bool:
    """Return ``True`` if *credentials* expire within *buffer_minutes*.

    The boundary itself counts as expiring: a token whose ``expires_at``
    equals ``now + buffer`` is refreshed.

    Args:
        credentials: The stored credential set.
        buffer_minutes: Safety margin before the real expiry.
        now: Current time in epoch milliseconds (defaults to the clock).
    """
    current = now_ms() if now is None else now
    return credentials.expires_at <= current + int(buffer_minutes * 60_000)


class CredentialStore:
    """Read/write the credential file at *path*.

    Args:
        path: Location of the credential JSON file.

    Example::

        store = CredentialStore(Path("~/.slidecli/tokens.json").expanduser())
        store.save(credentials)
        assert store.load() == credentials
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """The filesystem path to the credential file."""
        return self._path

    def load(self) -> Optional[CredentialSet]:
        """Load the stored credentials.

        Returns:
            The validated :class:`CredentialSet`, or ``None`` if the file
            does not exist, cannot be read or parsed, or lacks any of the
            four required fields.
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            logger.debug("No credential file at %s", self._path)
            return None
        except OSError as exc:
            logger.warning("Failed to read credential file %s: %s", self._path, exc)
            return None

        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            logger.warning("Credential file %s is not valid JSON: %s", self._path, exc)
            return None

        credentials = CredentialSet.from_json_dict(data)
        if credentials is None:
            logger.warning("Invalid credential file %s: missing required fields", self._path)
        return credentials

    def save(self, credentials: CredentialSet) -> None:
        """Persist *credentials* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        _ensure_private_dir(self._path.parent)
        text = json.dumps(credentials.to_json_dict(), indent=2) + "\n"
        atomic_write(self._path, text, mode=_FILE_MODE)
        logger.debug("Saved credentials to %s", self._path)

    def delete(self) -> bool:
        """Remove the credential file.

        Returns:
            ``True`` if a file was removed, ``False`` if none existed.

        Raises:
            OSError: For any failure other than the file being absent.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Deleted credentials at %s", self._path)
        return True
