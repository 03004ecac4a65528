"""Client for the provider's token and revocation endpoints.

Wraps the three HTTP calls the auth subsystem makes against the OAuth
provider -- authorization-code exchange, refresh, and revocation -- and
converts token responses into :class:`~slidecli.models.CredentialSet`
records.

All requests are form-encoded ``POST``\\s sent with :func:`httpx.post`, or
through an injected :class:`httpx.Client` when one is supplied.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

import httpx

from slidecli.auth.credential_store import now_ms
from slidecli.exceptions import AuthError, TokenRefreshFailedError
from slidecli.models import AuthSettings, CredentialSet

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = 30.0


def _number(token_data: dict[str, Any], key: str) -> Optional[float]:
    """Read a numeric field that providers may send as a number or a string."""
    value = token_data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise AuthError(f"Invalid token response: {key} is not a number: {value!r}")
    try:
        number = float(value)
    except ValueError as exc:
        raise AuthError(f"Invalid token response: {key} is not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise AuthError(f"Invalid token response: {key} is not finite: {value!r}")
    return number


def _expiry_ms(token_data: dict[str, Any], now: Optional[int]) -> Optional[int]:
    """Absolute expiry in epoch ms from ``expires_in`` (s) or ``expiry_date`` (ms)."""
    expiry_date = _number(token_data, "expiry_date")
    if expiry_date:
        return int(expiry_date)
    expires_in = _number(token_data, "expires_in")
    if expires_in is None:
        return None
    current = now_ms() if now is None else now
    return current + int(expires_in * 1000)


def credentials_from_response(
    token_data: dict[str, Any],
    fallback_refresh_token: Optional[str] = None,
    fallback_scope: str = "",
    now: Optional[int] = None,
) -> CredentialSet:
    """Build a :class:`CredentialSet` from a token endpoint response.

    Args:
        token_data: Parsed JSON body from the token endpoint.
        fallback_refresh_token: Used when the response carries no
            ``refresh_token`` (providers rotate refresh tokens optionally).
        fallback_scope: Used when the response carries no ``scope``.
        now: Current time in epoch ms, for ``expires_in`` conversion.

    Raises:
        AuthError: If the access token, refresh token or expiry is absent.
    """
    access_token = token_data.get("access_token")
    refresh_token = token_data.get("refresh_token") or fallback_refresh_token
    expires_at = _expiry_ms(token_data, now)
    scope = token_data.get("scope") or fallback_scope

    missing = [
        name
        for name, value in (
            ("access_token", access_token),
            ("refresh_token", refresh_token),
            ("expiry", expires_at),
            ("scope", scope),
        )
        if not value
    ]
    if missing:
        raise AuthError(f"Incomplete token response: missing {', '.join(missing)}")

    return CredentialSet(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        scope=scope,
    )


class TokenEndpoint:
    """Talks to the provider's token and revocation endpoints.

    Args:
        settings: Resolved auth settings supplying the endpoint URLs and
            the client credentials.
        http_client: Optional :class:`httpx.Client` to send requests
            through (connection reuse, proxies, a mock transport in
            tests). Without one, each call uses :func:`httpx.post`.
    """

    def __init__(self, settings: AuthSettings, http_client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self._http_client = http_client

    def _client_fields(self) -> dict[str, str]:
        data = {"client_id": self._settings.client_id}
        if self._settings.client_secret:
            data["client_secret"] = self._settings.client_secret
        return data

    def _send(self, url: str, data: dict[str, str]) -> httpx.Response:
        post = self._http_client.post if self._http_client is not None else httpx.post
        response = post(
            url,
            data=data,
            headers={"Accept": "application/json"},
            timeout=_REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response

    def _post(self, url: str, data: dict[str, str]) -> dict[str, Any]:
        token_data = self._send(url, data).json()
        if not isinstance(token_data, dict):
            raise AuthError("Token endpoint returned a non-object JSON body")
        return token_data

    def exchange_code(self, code: str, code_verifier: str, redirect_uri: str) -> dict[str, Any]:
        """Exchange an authorization code (plus its PKCE verifier) for tokens.

        Returns:
            The parsed token response.

        Raises:
            AuthError: On HTTP errors or an unparseable response.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            **self._client_fields(),
        }
        try:
            return self._post(self._settings.token_url, data)
        except httpx.HTTPStatusError as exc:
            raise AuthError(
                f"Token exchange failed with status {exc.response.status_code}: "
                f"{exc.response.text}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthError(f"Token exchange failed: {exc}") from exc

    def refresh(self, credentials: CredentialSet) -> CredentialSet:
        """Trade the stored refresh token for a fresh credential set.

        The previous refresh token and scope are kept when the provider
        does not return new ones.

        Raises:
            TokenRefreshFailedError: On any HTTP, parsing or validation error.
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": credentials.refresh_token,
            **self._client_fields(),
        }
        try:
            token_data = self._post(self._settings.token_url, data)
            return credentials_from_response(
                token_data,
                fallback_refresh_token=credentials.refresh_token,
                fallback_scope=credentials.scope,
            )
        except (httpx.HTTPError, ValueError, AuthError) as exc:
            raise TokenRefreshFailedError(exc) from exc

    def revoke(self, token: str) -> None:
        """Revoke *token* (access or refresh) at the provider.

        Raises:
            AuthError: If the revocation request fails.
        """
        try:
            self._send(self._settings.revocation_url, {"token": token})
        except httpx.HTTPError as exc:
            raise AuthError(f"Token revocation failed: {exc}") from exc
        logger.debug("Revoked token at %s", self._settings.revocation_url)
