"""Single-shot loopback HTTP listener for the OAuth redirect.

:class:`RedirectListener` binds ``127.0.0.1`` (never a wildcard address),
waits for the provider to redirect the browser back with an authorization
code, and shuts itself down. The outcome is delivered through a
:class:`concurrent.futures.Future` as a
:class:`~slidecli.models.CallbackOutcome`.

Two things race: the first terminal request to the redirect path, and a
timeout timer. A lock-guarded settlement flag decides the winner; the
loser is cancelled. Teardown runs on its own thread after the winning
response has been flushed, and the future is completed only once the
listening socket is closed, so the port can be rebound immediately.

Per-request rules for ``GET <redirect_path>``, in order:

1. ``error`` present -- 200 failure page, :class:`OAuthCallbackError`.
2. ``code`` or ``state`` missing -- 400, :class:`OAuthCallbackError`.
3. ``state`` differs from the expected one -- 403, :class:`StateMismatchError`.
4. Otherwise -- 200 success page, ``{code, state}``.

Any other path answers 404 and any other method 405; neither touches the
listener state.
"""

from __future__ import annotations

import html
import logging
import threading
from concurrent.futures import Future
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from slidecli.exceptions import (
    CallbackCancelledError,
    CallbackTimeoutError,
    OAuthCallbackError,
    StateMismatchError,
)
from slidecli.models import (
    DEFAULT_CALLBACK_PORT,
    DEFAULT_REDIRECT_PATH,
    CallbackOutcome,
    CallbackOutcomeKind,
)

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"

SUCCESS_MARKER = "Authentication Successful"

_PAGE_STYLE = """
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      display: flex;
      justify-content: center;
      align-items: center;
      height: 100vh;
      margin: 0;
      background: %s;
    }
    .container {
      background: white;
      padding: 3rem;
      border-radius: 1rem;
      box-shadow: 0 20px 60px rgba(0,0,0,0.3);
      text-align: center;
      max-width: 400px;
    }
    h1 { color: #2d3748; margin: 0 0 1rem 0; font-size: 2rem; }
    p { color: #4a5568; margin: 0; font-size: 1.1rem; line-height: 1.6; }
    .icon { font-size: 4rem; margin-bottom: 1rem; }
    code { background: #f7fafc; padding: 0.25rem 0.5rem; border-radius: 0.25rem; }
"""


def _success_page() -> str:
    style = _PAGE_STYLE % "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Authentication Complete</title>
  <style>{style}</style>
</head>
<body>
  <div class="container">
    <div class="icon">&#10003;</div>
    <h1>{SUCCESS_MARKER}!</h1>
    <p>You can close this window and return to the terminal.</p>
  </div>
  <script>setTimeout(() => window.close(), 1500);</script>
</body>
</html>"""


def _error_page(error: str, description: str) -> str:
    style = _PAGE_STYLE % "linear-gradient(135deg, #f093fb 0%, #f5576c 100%)"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Authentication Failed</title>
  <style>{style}</style>
</head>
<body>
  <div class="container">
    <div class="icon">&#10007;</div>
    <h1>Authentication Failed</h1>
    <p><strong>Error:</strong> <code>{html.escape(error)}</code></p>
    <p style="margin-top: 1rem;">{html.escape(description)}</p>
  </div>
</body>
</html>"""


def get_callback_url(
    port: int = DEFAULT_CALLBACK_PORT, redirect_path: str = DEFAULT_REDIRECT_PATH
) -> str:
    """Return the loopback redirect URI for *port* and *redirect_path*."""
    return f"http://{LOOPBACK_HOST}:{port}{redirect_path}"


class _Settlement:
    """Complete-once guard: only the first :meth:`claim` returns ``True``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settled = False

    def claim(self) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
            return True

    @property
    def settled(self) -> bool:
        with self._lock:
            return self._settled


class _CallbackHTTPServer(ThreadingHTTPServer):
    """HTTP server that knows which listener it reports to."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], listener: RedirectListener) -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)


class _CallbackHandler(BaseHTTPRequestHandler):
    """Answers redirect requests and reports terminal ones to the listener."""

    server: _CallbackHTTPServer
    # Drop idle connections instead of holding a request thread forever.
    timeout = 10

    def do_GET(self) -> None:
        listener = self.server.listener
        parsed = urlparse(self.path)
        if parsed.path != listener.redirect_path:
            self._send(404, "Not Found", content_type="text/plain")
            return

        status, body, outcome = listener.evaluate(parse_qs(parsed.query))
        self._send(status, body)
        listener.settle(outcome)

    def _method_not_allowed(self) -> None:
        self._send(405, "Method Not Allowed", content_type="text/plain", allow="GET")

    do_POST = do_PUT = do_PATCH = do_DELETE = do_HEAD = do_OPTIONS = _method_not_allowed

    def _send(
        self,
        status: int,
        body: str,
        content_type: str = "text/html",
        allow: Optional[str] = None,
    ) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", f"{content_type}; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        if allow:
            self.send_header("Allow", allow)
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)
        self.wfile.flush()

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


class RedirectListener:
    """Loopback listener that captures exactly one OAuth redirect.

    Args:
        expected_state: The CSRF ``state`` issued with the authorization
            request.
        port: TCP port to bind on ``127.0.0.1``. ``0`` picks a free port
            (see :attr:`port` after :meth:`start`).
        redirect_path: Path the provider redirects to.
        timeout: Seconds to wait before giving up.

    Example::

        listener = RedirectListener(state, port=8085, timeout=120)
        future = listener.start()
        result = future.result().unwrap()  # CallbackResult(code, state)
    """

    def __init__(
        self,
        expected_state: str,
        port: int = DEFAULT_CALLBACK_PORT,
        redirect_path: str = DEFAULT_REDIRECT_PATH,
        timeout: float = 120.0,
    ) -> None:
        self._expected_state = expected_state
        self._port = port
        self._redirect_path = redirect_path
        self._timeout = timeout
        self._future: Future[CallbackOutcome] = Future()
        self._settlement = _Settlement()
        self._server: Optional[_CallbackHTTPServer] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def redirect_path(self) -> str:
        return self._redirect_path

    @property
    def port(self) -> int:
        """The bound port (meaningful after :meth:`start`)."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._port

    @property
    def future(self) -> Future[CallbackOutcome]:
        return self._future

    def start(self) -> Future[CallbackOutcome]:
        """Bind the socket, start serving and arm the timeout.

        Returns:
            The future that completes with the listener's outcome.

        Raises:
            OSError: If the port cannot be bound.
        """
        if self._server is not None:
            raise RuntimeError("listener already started")

        self._server = _CallbackHTTPServer((LOOPBACK_HOST, self._port), self)
        threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.05},
            name="slidecli-callback-server",
            daemon=True,
        ).start()

        self._timer = threading.Timer(self._timeout, self._on_timeout)
        self._timer.daemon = True
        self._timer.start()

        logger.debug(
            "Listening for OAuth redirect on %s (timeout %ss)",
            get_callback_url(self.port, self._redirect_path),
            self._timeout,
        )
        return self._future

    def evaluate(self, params: dict[str, list[str]]) -> tuple[int, str, CallbackOutcome]:
        """Apply the redirect rules to parsed query *params*.

        Returns:
            A ``(status, html_body, outcome)`` tuple.
        """
        error = _first(params, "error")
        if error:
            description = _first(params, "error_description")
            return (
                200,
                _error_page(error, description or "Authentication was not successful"),
                CallbackOutcome.failure(
                    CallbackOutcomeKind.OAUTH_ERROR, OAuthCallbackError(error, description)
                ),
            )

        code = _first(params, "code")
        state = _first(params, "state")
        if not code or not state:
            return (
                400,
                _error_page("invalid_request", "Missing required parameters"),
                CallbackOutcome.failure(
                    CallbackOutcomeKind.OAUTH_ERROR,
                    OAuthCallbackError("invalid_request", "Missing code or state parameter"),
                ),
            )

        if state != self._expected_state:
            return (
                403,
                _error_page("state_mismatch", "Possible CSRF attack detected"),
                CallbackOutcome.failure(CallbackOutcomeKind.STATE_MISMATCH, StateMismatchError()),
            )

        return 200, _success_page(), CallbackOutcome.success(code, state)

    def settle(self, outcome: CallbackOutcome) -> bool:
        """Record *outcome* if nothing has settled yet, then tear down.

        Returns:
            ``True`` if this call won the settlement.
        """
        if not self._settlement.claim():
            logger.debug("Listener already settled; ignoring %s", outcome.kind.value)
            return False

        if self._timer is not None:
            self._timer.cancel()
        threading.Thread(
            target=self._teardown,
            args=(outcome,),
            name="slidecli-callback-teardown",
            daemon=True,
        ).start()
        return True

    def stop(self, wait: float | None = 5.0) -> None:
        """Cancel a pending wait and release the port.

        A listener that has already settled keeps its outcome.
        """
        self.settle(
            CallbackOutcome.failure(CallbackOutcomeKind.CANCELLED, CallbackCancelledError())
        )
        if wait is not None:
            self._future.exception(timeout=wait)

    def _on_timeout(self) -> None:
        self.settle(
            CallbackOutcome.failure(
                CallbackOutcomeKind.TIMEOUT, CallbackTimeoutError(self._timeout)
            )
        )

    def _teardown(self, outcome: CallbackOutcome) -> None:
        server = self._server
        try:
            if server is not None:
                server.shutdown()
                server.server_close()
        finally:
            logger.debug("OAuth redirect listener stopped (%s)", outcome.kind.value)
            self._future.set_result(outcome)


def _first(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


def start_listener(
    port: int,
    redirect_path: str,
    expected_state: str,
    timeout: float,
) -> Future[CallbackOutcome]:
    """Start a :class:`RedirectListener` and return its future.

    Args:
        port: Loopback TCP port.
        redirect_path: Path the provider redirects to (e.g. ``/callback``).
        expected_state: CSRF state issued with the authorization request.
        timeout: Seconds to wait for the redirect.
    """
    listener = RedirectListener(
        expected_state, port=port, redirect_path=redirect_path, timeout=timeout
    )
    return listener.start()
