"""Settings resolution with a per-user dot-directory and atomic writes.

This module is the composition root for configuration:

* **Directory layout** -- everything lives under ``~/.slidecli/`` (or
  ``$SLIDECLI_HOME``): the config file, the credential file and crash
  logs. See :func:`get_home_dir` and :func:`get_default_token_path`.
* **Config file** -- an optional ``config.json`` deserialised into
  :class:`~slidecli.models.AuthSettings`. Managed via
  :func:`load_config_file`, :func:`save_config_file`.
* **Precedence resolution** -- :func:`load_settings` merges CLI flags,
  environment variables, the config file and defaults into the final
  settings object. The environment is read here and nowhere else.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from slidecli.exceptions import ConfigError
from slidecli.models import AuthSettings

logger = logging.getLogger(__name__)

_APP_NAME = "slidecli"
_CONFIG_FILENAME = "config.json"
_TOKEN_FILENAME = "tokens.json"

ENV_HOME = "SLIDECLI_HOME"
ENV_CALLBACK_PORT = "SLIDECLI_CALLBACK_PORT"
ENV_TOKEN_PATH = "SLIDECLI_TOKEN_PATH"
ENV_CLIENT_ID = "SLIDECLI_CLIENT_ID"
ENV_CLIENT_SECRET = "SLIDECLI_CLIENT_SECRET"


# --- Paths ---


def get_home_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the per-user dot-directory (not created).

    ``$SLIDECLI_HOME`` when set, otherwise ``~/.slidecli``.
    """
    env = os.environ if environ is None else environ
    override = env.get(ENV_HOME, "")
    if override:
        return Path(override).expanduser()
    return Path.home() / f".{_APP_NAME}"


def get_default_token_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Default credential file location: ``<home>/tokens.json``."""
    return get_home_dir(environ) / _TOKEN_FILENAME


def get_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Path to the optional config file: ``<home>/config.json``."""
    return get_home_dir(environ) / _CONFIG_FILENAME


def resolve_token_path(settings: AuthSettings) -> Path:
    """Absolute credential file path for *settings*.

    Raises:
        ConfigError: If *settings* did not come from :func:`load_settings`
            and carries no ``token_path``.
    """
    if not settings.token_path:
        raise ConfigError(
            "No credential file path configured; resolve settings with load_settings()"
        )
    return Path(settings.token_path).expanduser().resolve()


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. A reader therefore
    sees either the old content or the new content, never a mix. When
    *mode* is given it is applied to the temp file before any content is
    written. On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Load the raw config file as a dict.

    Args:
        path: Config file location. Defaults to :func:`get_config_path`.

    Returns:
        The parsed JSON object, or an empty dict if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = path or get_config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file at {path}: expected a JSON object")
    return data


def save_config_file(settings: AuthSettings, path: Optional[Path] = None) -> Path:
    """Persist *settings* to the config file atomically.

    The client secret is never written; it belongs in the environment.

    Returns:
        The path that was written.
    """
    path = path or get_config_path()
    data = settings.model_dump(mode="json", exclude={"client_secret"})
    atomic_write(path, json.dumps(data, indent=2) + "\n", mode=0o600)
    return path


# --- Precedence resolution ---


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    port = environ.get(ENV_CALLBACK_PORT)
    if port:
        try:
            overrides["callback_port"] = int(port)
        except ValueError as exc:
            raise ConfigError(
                f"{ENV_CALLBACK_PORT} must be an integer, got: {port!r}"
            ) from exc
    token_path = environ.get(ENV_TOKEN_PATH)
    if token_path:
        overrides["token_path"] = str(Path(token_path).expanduser().resolve())
    client_id = environ.get(ENV_CLIENT_ID)
    if client_id:
        overrides["client_id"] = client_id
    client_secret = environ.get(ENV_CLIENT_SECRET)
    if client_secret:
        overrides["client_secret"] = client_secret
    return overrides


def load_settings(
    cli_port: Optional[int] = None,
    cli_token_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> AuthSettings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_port``, ``cli_token_path``)
        2. Environment variables (``SLIDECLI_CALLBACK_PORT``,
           ``SLIDECLI_TOKEN_PATH``, ``SLIDECLI_CLIENT_ID``,
           ``SLIDECLI_CLIENT_SECRET``)
        3. Config file (``~/.slidecli/config.json``)
        4. Defaults

    Returns:
        A validated :class:`~slidecli.models.AuthSettings`.

    Raises:
        ConfigError: If the config file or any override is invalid.
    """
    env = os.environ if environ is None else environ

    data = load_config_file(config_path or get_config_path(env))
    data.update(_env_overrides(env))
    if cli_port is not None:
        data["callback_port"] = cli_port
    if cli_token_path is not None:
        data["token_path"] = str(Path(cli_token_path).expanduser().resolve())

    try:
        settings = AuthSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

    if not settings.token_path:
        settings.token_path = str(get_default_token_path(env))

    logger.debug(
        "Resolved settings: port=%d token_path=%s", settings.callback_port, settings.token_path
    )
    return settings
