"""Config commands -- view and modify the slidecli config file.

Provides the ``slidecli config`` sub-command group for reading, updating,
and resetting ``~/.slidecli/config.json``. Values stored there are the
lowest-precedence layer of :func:`slidecli.config.load_settings`;
environment variables and CLI flags still override them.
"""

from __future__ import annotations

import typer

from slidecli.commands import settings_from_context
from slidecli.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

_MASKED_FIELDS = ("client_secret",)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective settings (flags, environment and config file merged).

    Example::

        slidecli config show
        slidecli --json config show
    """
    from slidecli.config import get_config_path

    settings = settings_from_context(ctx)
    data = settings.model_dump(mode="json")
    for field in _MASKED_FIELDS:
        if data.get(field):
            data[field] = "********"
    info(f"Config file: {get_config_path()}")
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. 'callback_port'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the config file.

    The value is coerced to the existing field's type (bool, int, float,
    list or str) and the result is validated before saving. The client
    secret cannot be stored this way.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value invalid.

    Example::

        slidecli config set client_id 1234.apps.googleusercontent.com
        slidecli config set callback_port 9000
        slidecli config set scopes "https://www.googleapis.com/auth/presentations"
    """
    from slidecli.config import load_config_file, save_config_file
    from slidecli.exceptions import ConfigError
    from slidecli.models import AuthSettings

    if key in _MASKED_FIELDS:
        error(f"{key} must be provided through the environment (SLIDECLI_CLIENT_SECRET).")
        raise typer.Exit(code=2)
    if key not in AuthSettings.model_fields:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        data = load_config_file()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    current = data.get(key, AuthSettings.model_fields[key].get_default(call_default_factory=True))
    if isinstance(current, bool):
        coerced: object = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    elif isinstance(current, float):
        try:
            coerced = float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    elif isinstance(current, list):
        coerced = [item for item in value.replace(",", " ").split() if item]
    else:
        coerced = value

    data[key] = coerced
    try:
        settings = AuthSettings.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    path = save_config_file(settings)
    success(f"Set {key} = {coerced} ({path})")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Delete the config file so every setting returns to its default.

    Asks for confirmation unless the global ``--force`` flag is active.

    Example::

        slidecli config reset
        slidecli --force config reset
    """
    from slidecli.config import get_config_path

    path = get_config_path()
    if not path.is_file():
        info("No config file to reset.")
        return

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    path.unlink()
    success("Configuration reset to defaults.")
