"""Canonical data shapes shared across all slidecli modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's dot-directory:
    :class:`AuthSettings`.

**Authentication records** -- produced and consumed by :mod:`slidecli.auth`:
    :class:`CredentialSet`, :class:`PKCEParameters`, :class:`CallbackResult`
    and the discriminated listener result :class:`CallbackOutcome`.

Persisted and configuration models use Pydantic v2. The short-lived
listener records are plain dataclasses because they carry exception
instances and never touch disk.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from slidecli.exceptions import CallbackError


GOOGLE_AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOCATION_URL = "https://oauth2.googleapis.com/revoke"

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/presentations",
    "https://www.googleapis.com/auth/drive.file",
]

DEFAULT_CALLBACK_PORT = 8085
DEFAULT_REDIRECT_PATH = "/callback"
DEFAULT_CALLBACK_TIMEOUT = 120.0


# --- Settings ---


class AuthSettings(BaseModel):
    """Everything the auth subsystem needs to know, resolved once at startup.

    Built by :func:`slidecli.config.load_settings` from CLI flags,
    environment variables and the config file, then passed explicitly to
    every auth entry point. Nothing below the composition root reads the
    environment.

    Example::

        AuthSettings(
            client_id="1234.apps.googleusercontent.com",
            client_secret="s3cret",
            callback_port=8085,
        )
    """

    client_id: str = Field(default="", description="OAuth client identifier")
    client_secret: str = Field(default="", description="OAuth client secret")
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    authorization_url: str = GOOGLE_AUTHORIZATION_URL
    token_url: str = GOOGLE_TOKEN_URL
    revocation_url: str = GOOGLE_REVOCATION_URL
    callback_port: int = Field(default=DEFAULT_CALLBACK_PORT, ge=1, le=65535)
    redirect_path: str = Field(default=DEFAULT_REDIRECT_PATH, pattern=r"^/")
    token_path: Optional[str] = Field(
        default=None, description="Credential file path (None = default location)"
    )
    callback_timeout: float = Field(
        default=DEFAULT_CALLBACK_TIMEOUT, gt=0, description="Seconds to wait for the redirect"
    )
    expiry_buffer_minutes: int = Field(
        default=5, ge=0, description="Refresh tokens this many minutes before expiry"
    )
    open_browser: bool = Field(
        default=True, description="Launch the system browser during login"
    )


# --- Credentials ---


class CredentialSet(BaseModel):
    """A complete set of OAuth tokens for the signed-in user.

    Stored on disk as ``{"accessToken", "refreshToken", "expiresAt",
    "scope"}``. All four fields are required and non-empty; a record that
    fails this check is treated as absent rather than partially valid.
    ``expires_at`` is an absolute epoch timestamp in milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)
    expires_at: int = Field(alias="expiresAt", gt=0)
    scope: str = Field(min_length=1)

    @classmethod
    def from_json_dict(cls, data: Any) -> Optional[CredentialSet]:
        """Build a credential set from loosely-typed JSON, or return ``None``.

        Args:
            data: Whatever ``json.loads`` produced for the credential file.

        Returns:
            A validated :class:`CredentialSet`, or ``None`` if *data* is
            not an object or any required field is missing or empty.
        """
        if not isinstance(data, dict):
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise with the on-disk camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class PKCEParameters(BaseModel):
    """A PKCE verifier/challenge pair for one authorization attempt. Never persisted."""

    model_config = ConfigDict(frozen=True)

    verifier: str = Field(min_length=43, max_length=128)
    challenge: str
    method: str = "S256"


# --- Redirect listener results ---


@dataclass(frozen=True)
class CallbackResult:
    """The ``code`` and ``state`` captured from the provider's redirect."""

    code: str
    state: str


class CallbackOutcomeKind(str, enum.Enum):
    """How a redirect listener finished."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    STATE_MISMATCH = "state_mismatch"
    OAUTH_ERROR = "oauth_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CallbackOutcome:
    """Discriminated result delivered through the listener's future.

    Exactly one of :attr:`result` (for ``SUCCESS``) or :attr:`error`
    (for every other kind) is set.
    """

    kind: CallbackOutcomeKind
    result: Optional[CallbackResult] = None
    error: Optional[CallbackError] = None

    @classmethod
    def success(cls, code: str, state: str) -> CallbackOutcome:
        return cls(CallbackOutcomeKind.SUCCESS, result=CallbackResult(code=code, state=state))

    @classmethod
    def failure(cls, kind: CallbackOutcomeKind, error: CallbackError) -> CallbackOutcome:
        return cls(kind, error=error)

    def unwrap(self) -> CallbackResult:
        """Return the captured result, or raise the carried error."""
        if self.kind is CallbackOutcomeKind.SUCCESS and self.result is not None:
            return self.result
        assert self.error is not None
        raise self.error
