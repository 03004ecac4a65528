"""slidecli -- command-line access to Google Slides with delegated OAuth.

The package signs the local user in through the OAuth2 Authorization Code
flow with PKCE, persists the resulting tokens on disk with owner-only
permissions, and silently refreshes them on later invocations so that the
user is only asked for consent when no usable credential exists.

Typical workflow::

    slidecli auth login    # open the browser, grant access
    slidecli auth status   # inspect the stored credential
    slidecli auth logout   # forget it again

Modules:
    app: Typer application and CLI entry point.
    auth: PKCE, redirect listener, credential store and orchestrator.
    models: Pydantic models shared across the package.
    config: Settings resolution (flags, environment, config file).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
