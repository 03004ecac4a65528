"""Built-in CLI sub-commands for slidecli.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~slidecli.commands.auth` -- sign in, sign out, inspect credentials.
* :mod:`~slidecli.commands.config` -- view and modify the config file.

Both modules export a :class:`typer.Typer` sub-application registered on
the root app by :func:`slidecli.app.main`.
"""

from __future__ import annotations

import typer

from slidecli.models import AuthSettings


def settings_from_context(ctx: typer.Context) -> AuthSettings:
    """Resolve settings using the global ``--port`` / ``--token-path`` flags.

    Raises:
        ConfigError: If the config file or environment is invalid.
    """
    from slidecli.config import load_settings

    obj = ctx.obj or {}
    return load_settings(cli_port=obj.get("port"), cli_token_path=obj.get("token_path"))
