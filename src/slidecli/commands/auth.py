"""Auth commands -- sign in to Google and manage the stored credential.

Provides the ``slidecli auth`` sub-command group. ``login`` drives the
:class:`~slidecli.auth.oauth_client.Authenticator` (reusing or refreshing
stored tokens when possible), ``logout`` removes the credential file,
``status`` shows what is stored, and ``token`` prints a valid access token
for use in scripts.

Typical workflow::

    slidecli auth login          # browser consent on first use
    slidecli auth status         # inspect stored credential
    slidecli auth logout --revoke
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from slidecli.commands import settings_from_context
from slidecli.output import error, get_output, info, print_data, success, suggest


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", help="Ignore stored credentials and sign in again."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the authorization URL."
    ),
) -> None:
    """Sign in, reusing or refreshing stored credentials when possible.

    Raises:
        typer.Exit: With code 3 if authentication fails.

    Example::

        slidecli auth login
        slidecli auth login --force --no-browser
    """
    from slidecli.auth import Authenticator
    from slidecli.exceptions import AuthenticationError

    settings = settings_from_context(ctx)
    if no_browser:
        settings.open_browser = False
    if not settings.client_id:
        error("No OAuth client configured.")
        suggest("Set SLIDECLI_CLIENT_ID and SLIDECLI_CLIENT_SECRET, or run: slidecli config set client_id <id>")
        raise typer.Exit(code=2)

    try:
        authenticator = Authenticator(settings)
        handle = authenticator.force_login() if force else authenticator.get_authenticated_handle()
    except AuthenticationError as exc:
        error(str(exc))
        if exc.refresh_error is not None:
            info(f"Earlier refresh attempt: {exc.refresh_error}")
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Signed in. Access token valid until {_format_expiry(handle.credentials.expires_at)}.")


@auth_app.command("logout")
def auth_logout(
    ctx: typer.Context,
    revoke: bool = typer.Option(
        False, "--revoke", help="Also revoke the refresh token at the provider."
    ),
) -> None:
    """Remove stored credentials so the next command prompts for consent.

    Example::

        slidecli auth logout
        slidecli auth logout --revoke
    """
    from slidecli.auth import logout

    settings = settings_from_context(ctx)
    if logout(settings, revoke=revoke):
        success("Logged out successfully. Your stored credentials have been cleared.")
        suggest("Sign in again: slidecli auth login")
    else:
        info("No stored credentials to remove.")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the stored credential, with tokens truncated.

    Example::

        slidecli auth status
        slidecli --json auth status
    """
    from slidecli.auth import CredentialStore, is_expiring
    from slidecli.config import resolve_token_path

    settings = settings_from_context(ctx)
    store = CredentialStore(resolve_token_path(settings))
    credentials = store.load()
    if credentials is None:
        info(f"No stored credentials at {store.path}.")
        suggest("Sign in: slidecli auth login")
        return

    expiring = is_expiring(credentials, settings.expiry_buffer_minutes)
    rows = [
        ["Path", str(store.path)],
        ["Access Token", _truncate(credentials.access_token)],
        ["Refresh Token", _truncate(credentials.refresh_token)],
        ["Expires At", _format_expiry(credentials.expires_at)],
        ["Expiring", str(expiring)],
        ["Scope", credentials.scope],
    ]
    get_output().print_table(["Field", "Value"], rows, title="Stored Credential")


@auth_app.command("token")
def auth_token(ctx: typer.Context) -> None:
    """Print a valid access token to stdout, signing in if necessary.

    Example::

        curl -H "Authorization: Bearer $(slidecli auth token)" ...
    """
    from slidecli.auth import Authenticator
    from slidecli.exceptions import AuthenticationError

    settings = settings_from_context(ctx)
    try:
        handle = Authenticator(settings).get_authenticated_handle()
    except AuthenticationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_data(handle.access_token)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _truncate(secret: str) -> str:
    return secret[:8] + "..." if len(secret) > 8 else secret


def _format_expiry(expires_at_ms: int) -> str:
    moment = datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="seconds")
