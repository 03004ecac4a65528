"""Authentication orchestrator: load, reuse or refresh, else ask the user.

:class:`Authenticator` is the single entry point the rest of slidecli uses
before talking to the API. :meth:`Authenticator.get_authenticated_handle`
walks this state machine:

1. **LOAD** the credential file.
2. Stored credentials that are not about to expire are used as-is.
3. Expiring credentials are refreshed once against the token endpoint.
   A failed refresh is logged and falls through to step 4.
4. **INTERACTIVE FLOW**: generate PKCE parameters and a CSRF state, start
   the loopback :class:`~slidecli.auth.callback_server.RedirectListener`,
   show the authorization URL and try to open a browser, wait for the
   redirect, exchange the code (plus verifier) for tokens, and persist
   them.

Every failure in step 4 is wrapped in one
:class:`~slidecli.exceptions.AuthenticationError`; nothing else crosses
this module's public boundary. There is no internal retry: calling
:meth:`~Authenticator.get_authenticated_handle` again starts over from
LOAD.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Optional
from urllib.parse import urlencode

from slidecli.auth.base import AuthHandle
from slidecli.auth.callback_server import RedirectListener, get_callback_url
from slidecli.auth.credential_store import CredentialStore, is_expiring
from slidecli.auth.pkce import generate_pkce_parameters, generate_state
from slidecli.auth.token_endpoint import TokenEndpoint, credentials_from_response
from slidecli.config import resolve_token_path
from slidecli.exceptions import (
    AuthenticationError,
    AuthError,
    TokenRefreshFailedError,
)
from slidecli.models import (
    AuthSettings,
    CallbackOutcome,
    CallbackOutcomeKind,
    CallbackResult,
    CredentialSet,
    PKCEParameters,
)
from slidecli.output import info, show_url, warning

logger = logging.getLogger(__name__)

BrowserOpener = Callable[[str], bool]
ListenerFactory = Callable[..., RedirectListener]


def build_authorization_url(
    settings: AuthSettings,
    pkce: PKCEParameters,
    state: str,
    redirect_uri: str,
) -> str:
    """Return the provider authorization URL for one interactive attempt.

    Requests offline access (a refresh token) and forces the consent
    screen so the provider issues a refresh token every time.
    """
    params = {
        "client_id": settings.client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(settings.scopes),
        "access_type": "offline",
        "prompt": "consent",
        "code_challenge": pkce.challenge,
        "code_challenge_method": pkce.method,
        "state": state,
    }
    return f"{settings.authorization_url}?{urlencode(params)}"


class Authenticator:
    """Produces an :class:`~slidecli.auth.base.AuthHandle` for the current user.

    Args:
        settings: Resolved settings (see :func:`slidecli.config.load_settings`).
        store: Credential store; defaults to the file named by the settings.
        token_endpoint: Token endpoint client; defaults to one built from
            the settings.
        browser_opener: Callable that opens a URL and returns whether it
            succeeded; defaults to :func:`webbrowser.open`.
        listener_factory: Builds the redirect listener; defaults to
            :class:`~slidecli.auth.callback_server.RedirectListener`.
    """

    def __init__(
        self,
        settings: AuthSettings,
        store: Optional[CredentialStore] = None,
        token_endpoint: Optional[TokenEndpoint] = None,
        browser_opener: Optional[BrowserOpener] = None,
        listener_factory: Optional[ListenerFactory] = None,
    ) -> None:
        self._settings = settings
        self._store = store or CredentialStore(resolve_token_path(settings))
        self._token_endpoint = token_endpoint or TokenEndpoint(settings)
        self._open_browser = browser_opener or webbrowser.open
        self._listener_factory = listener_factory or RedirectListener

    @property
    def store(self) -> CredentialStore:
        return self._store

    def get_authenticated_handle(self, force: bool = False) -> AuthHandle:
        """Return a handle with usable credentials, prompting only if needed.

        Args:
            force: Skip stored credentials and go straight to the
                interactive flow (``slidecli auth login --force``).

        Raises:
            AuthenticationError: If the interactive flow fails. The cause
                is chained, and any preceding refresh failure is kept on
                :attr:`~slidecli.exceptions.AuthenticationError.refresh_error`.
        """
        refresh_error: Optional[TokenRefreshFailedError] = None

        credentials = None if force else self._store.load()
        if credentials is not None:
            if not is_expiring(credentials, self._settings.expiry_buffer_minutes):
                logger.debug("Using stored credentials from %s", self._store.path)
                return AuthHandle(credentials)
            try:
                return AuthHandle(self._refresh(credentials))
            except TokenRefreshFailedError as exc:
                logger.warning("Token refresh failed, starting new OAuth flow: %s", exc)
                refresh_error = exc

        try:
            credentials = self._interactive_flow()
        except Exception as exc:
            raise AuthenticationError(
                f"Failed to complete OAuth authentication: {exc}",
                cause=exc,
                refresh_error=refresh_error,
            ) from exc
        return AuthHandle(credentials)

    def force_login(self) -> AuthHandle:
        """Ignore stored credentials and run the interactive flow."""
        return self.get_authenticated_handle(force=True)

    def _refresh(self, credentials: CredentialSet) -> CredentialSet:
        """Refresh once and persist. Any failure becomes :class:`TokenRefreshFailedError`."""
        logger.debug("Stored credentials expire at %d; refreshing", credentials.expires_at)
        refreshed = self._token_endpoint.refresh(credentials)
        try:
            self._store.save(refreshed)
        except OSError as exc:
            raise TokenRefreshFailedError(exc) from exc
        logger.debug("Refreshed access token")
        return refreshed

    def _interactive_flow(self) -> CredentialSet:
        pkce = generate_pkce_parameters()
        state = generate_state()

        # Bind before the browser opens so the redirect cannot arrive first.
        listener = self._listener_factory(
            state,
            port=self._settings.callback_port,
            redirect_path=self._settings.redirect_path,
            timeout=self._settings.callback_timeout,
        )
        future = listener.start()
        redirect_uri = get_callback_url(listener.port, self._settings.redirect_path)

        try:
            auth_url = build_authorization_url(self._settings, pkce, state, redirect_uri)
            self._launch_browser(auth_url)
            outcome = future.result()
        except BaseException:
            # Ctrl-C or a failure before the redirect: release the port now.
            listener.stop()
            raise

        result = self._accept(outcome)
        token_data = self._token_endpoint.exchange_code(result.code, pkce.verifier, redirect_uri)
        credentials = credentials_from_response(
            token_data, fallback_scope=" ".join(self._settings.scopes)
        )
        self._store.save(credentials)
        logger.debug("Saved new credentials to %s", self._store.path)
        return credentials

    def _accept(self, outcome: CallbackOutcome) -> CallbackResult:
        """Return the captured code, or raise the listener's error."""
        kind = outcome.kind
        if kind is CallbackOutcomeKind.STATE_MISMATCH:
            logger.error("Redirect carried an unexpected state; aborting login")
        elif kind is CallbackOutcomeKind.TIMEOUT:
            logger.debug("No redirect received before the timeout")
        elif kind is CallbackOutcomeKind.OAUTH_ERROR:
            logger.debug("Provider reported an error: %s", outcome.error)
        elif kind is CallbackOutcomeKind.CANCELLED:
            logger.debug("Redirect wait cancelled")
        elif kind is not CallbackOutcomeKind.SUCCESS:
            raise AssertionError(f"unhandled callback outcome: {kind!r}")
        return outcome.unwrap()

    def _launch_browser(self, auth_url: str) -> None:
        info("Opening browser for Google authentication...")
        info("If the browser does not open automatically, visit this URL:")
        show_url(auth_url)

        if not self._settings.open_browser:
            return
        try:
            opened = self._open_browser(auth_url)
        except (webbrowser.Error, OSError) as exc:
            logger.debug("Browser launch failed: %s", exc)
            opened = False
        if not opened:
            warning("Failed to open browser automatically. Please visit the URL above manually.")


def logout(
    settings: AuthSettings,
    revoke: bool = False,
    store: Optional[CredentialStore] = None,
    token_endpoint: Optional[TokenEndpoint] = None,
) -> bool:
    """Forget the stored credentials, optionally revoking them first.

    A failed revocation is reported and the local file is still removed.

    Returns:
        ``True`` if a credential file was removed.

    Raises:
        OSError: If the credential file exists but cannot be removed.
    """
    store = store or CredentialStore(resolve_token_path(settings))
    if revoke:
        credentials = store.load()
        if credentials is not None:
            endpoint = token_endpoint or TokenEndpoint(settings)
            try:
                endpoint.revoke(credentials.refresh_token)
            except AuthError as exc:
                warning(str(exc))
    return store.delete()
