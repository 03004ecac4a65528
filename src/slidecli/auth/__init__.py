"""Authentication subsystem for slidecli.

Obtains and maintains delegated access to the Google Slides API for the
local user through the OAuth2 Authorization Code flow with PKCE.

The main entry points are:

- :class:`Authenticator` -- the orchestrator; call
  :meth:`~Authenticator.get_authenticated_handle` before any API request.
- :class:`AuthHandle` -- what the orchestrator returns: bearer headers or a
  ready :class:`httpx.Client`.
- :class:`CredentialStore` -- the on-disk credential file.
- :class:`RedirectListener` / :func:`start_listener` -- the loopback
  listener that captures the authorization code.
- :mod:`~slidecli.auth.pkce` -- verifier, challenge and state generation.

Typical usage::

    from slidecli.auth import Authenticator
    from slidecli.config import load_settings

    handle = Authenticator(load_settings()).get_authenticated_handle()
    headers = handle.headers
"""

from slidecli.auth.base import AuthHandle
from slidecli.auth.callback_server import RedirectListener, get_callback_url, start_listener
from slidecli.auth.credential_store import CredentialStore, is_expiring
from slidecli.auth.oauth_client import Authenticator, build_authorization_url, logout
from slidecli.auth.pkce import (
    generate_challenge,
    generate_pkce_parameters,
    generate_state,
    generate_verifier,
)
from slidecli.auth.token_endpoint import TokenEndpoint, credentials_from_response

__all__ = [
    "AuthHandle",
    "Authenticator",
    "CredentialStore",
    "RedirectListener",
    "TokenEndpoint",
    "build_authorization_url",
    "credentials_from_response",
    "generate_challenge",
    "generate_pkce_parameters",
    "generate_state",
    "generate_verifier",
    "get_callback_url",
    "is_expiring",
    "logout",
    "start_listener",
]
