"""PKCE (Proof Key for Code Exchange) helpers, :rfc:`7636`.

The verifier binds an authorization code to the process that asked for
it; the state token binds the redirect to the authorization request that
produced it. Both come from :mod:`secrets`.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from slidecli.models import PKCEParameters

_VERIFIER_BYTES = 32  # 43 base64url characters
_STATE_BYTES = 24  # 32 base64url characters


def _b64url(raw: bytes) -> str:
    """Base64url-encode *raw* without ``=`` padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_verifier() -> str:
    """Generate a 43-character code verifier from 32 random bytes.

    The result only contains ``[A-Za-z0-9_-]``, which is a subset of the
    unreserved characters allowed by :rfc:`7636`.
    """
    return _b64url(secrets.token_bytes(_VERIFIER_BYTES))


def generate_challenge(verifier: str) -> str:
    """Return ``base64url(sha256(verifier))`` without padding (S256)."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_state() -> str:
    """Generate a 32-character CSRF state token."""
    return _b64url(secrets.token_bytes(_STATE_BYTES))


def generate_pkce_parameters() -> PKCEParameters:
    """Generate a fresh verifier/challenge pair for one authorization attempt."""
    verifier = generate_verifier()
    return PKCEParameters(verifier=verifier, challenge=generate_challenge(verifier))
