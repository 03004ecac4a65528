"""Exception hierarchy for slidecli.

All exceptions inherit from :class:`SlidecliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`slidecli.exit_codes`.
The top-level error handler in :func:`slidecli.app.main` catches
``SlidecliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SlidecliError (exit 1)
    +-- ConfigError                 (exit 1)
    +-- AuthError                   (exit 3)
        +-- AuthenticationError
        +-- TokenRefreshFailedError
        +-- CallbackError
            +-- CallbackTimeoutError
            +-- CallbackCancelledError
            +-- StateMismatchError
            +-- OAuthCallbackError

Only :class:`AuthenticationError` leaves
:meth:`~slidecli.auth.oauth_client.Authenticator.get_authenticated_handle`;
the other auth errors are produced and consumed inside the auth package.
"""

from __future__ import annotations

from slidecli.exit_codes import EXIT_AUTH_FAILURE, EXIT_GENERIC_FAILURE


class SlidecliError(Exception):
    """Base exception for all slidecli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(SlidecliError):
    """Raised for configuration problems (invalid config file, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(SlidecliError):
    """Raised when authentication or authorisation fails."""

    exit_code = EXIT_AUTH_FAILURE


class AuthenticationError(AuthError):
    """The single error surfaced by the authentication orchestrator.

    The originating failure is chained as ``__cause__`` (and mirrored on
    :attr:`cause`). When a silent refresh was attempted and failed before
    the interactive flow also failed, that refresh error is kept on
    :attr:`refresh_error` so the diagnostic context is not lost.
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        refresh_error: BaseException | None = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.refresh_error = refresh_error


class TokenRefreshFailedError(AuthError):
    """Raised when the refresh token could not be exchanged for a new access token."""

    def __init__(self, cause: BaseException | None = None):
        message = "Failed to refresh access token - refresh token may be revoked or expired"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.cause = cause


class CallbackError(AuthError):
    """Base class for failures reported by the local redirect listener."""


class CallbackTimeoutError(CallbackError):
    """No terminal redirect request arrived before the listener timed out."""

    def __init__(self, timeout: float):
        super().__init__(f"OAuth callback timed out after {timeout:g}s")
        self.timeout = timeout


class CallbackCancelledError(CallbackError):
    """The listener was stopped before any redirect request arrived."""

    def __init__(self) -> None:
        super().__init__("OAuth callback wait was cancelled")


class StateMismatchError(CallbackError):
    """The ``state`` echoed by the provider does not match the one we issued."""

    def __init__(self) -> None:
        super().__init__("State parameter mismatch - possible CSRF attack")


class OAuthCallbackError(CallbackError):
    """The provider reported an error, or the redirect was malformed."""

    def __init__(self, error: str, description: str | None = None):
        message = f"OAuth error: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)
        self.error = error
        self.description = description
