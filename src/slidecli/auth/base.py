"""The ready-to-use handle returned by the authentication orchestrator.

:class:`AuthHandle` wraps a validated
:class:`~slidecli.models.CredentialSet` and turns it into the artifacts an
HTTP call needs: an ``Authorization`` header, or a pre-configured
:class:`httpx.Client`.

See Also:
    :class:`slidecli.auth.oauth_client.Authenticator` which produces it.
"""

from __future__ import annotations

from typing import Any

import httpx

from slidecli.models import CredentialSet


class AuthHandle:
    """Authenticated access to the target API.

    Args:
        credentials: The credential set the handle was built from.

    Example::

        handle = Authenticator(settings).get_authenticated_handle()
        with handle.client("https://slides.googleapis.com/v1") as client:
            client.get(f"/presentations/{presentation_id}")
    """

    def __init__(self, credentials: CredentialSet):
        self.credentials = credentials

    @property
    def access_token(self) -> str:
        return self.credentials.access_token

    @property
    def headers(self) -> dict[str, str]:
        """HTTP headers to add to every request."""
        return {"Authorization": f"Bearer {self.credentials.access_token}"}

    def client(self, base_url: str = "", **kwargs: Any) -> httpx.Client:
        """Return an :class:`httpx.Client` that sends the bearer token.

        Extra keyword arguments are passed to :class:`httpx.Client`;
        caller-supplied ``headers`` are merged with the auth header.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(self.headers)
        return httpx.Client(base_url=base_url, headers=headers, **kwargs)

    def __repr__(self) -> str:
        return f"AuthHandle(expires_at={self.credentials.expires_at}, scope={self.credentials.scope!r})"
