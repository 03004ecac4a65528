"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~slidecli.exceptions.SlidecliError` subclass.
Shell wrappers can inspect the exit code to tell an authentication failure
apart from a configuration problem without parsing stderr.

Example::

    $ slidecli auth login
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the browser flow was denied or timed out
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
