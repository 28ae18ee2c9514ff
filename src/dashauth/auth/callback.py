"""Receive the provider's redirect on a short-lived local HTTP listener.

Two layers:

* :func:`handle_callback` -- validates one set of redirect query
  parameters against a :class:`~dashauth.auth.session.SessionState` and
  stores the authorization code. Pure protocol logic, no I/O.
* :class:`CallbackListener` -- a threaded HTTP server on the fixed
  redirect address. It dispatches requests to :func:`handle_callback`
  until the first definitive outcome, then answers any further requests
  (browser prefetches, reloads, duplicates) with an acknowledgement page
  without touching the session.

Listener lifecycle::

    listener = CallbackListener(session, "localhost", 8976, "/oauth/callback")
    with listener.start(timeout=120):
        webbrowser.open(url)
        outcome = listener.wait()   # None on timeout or cancel()
"""

from __future__ import annotations

import html
import logging
import secrets
import threading
import time
from collections.abc import Mapping
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from dashauth.auth.errors import OAuthError, OAuthErrorKind, classify_error
from dashauth.auth.result import Err, Ok, Result
from dashauth.auth.session import SessionState
from dashauth.exceptions import AuthError

logger = logging.getLogger(__name__)

_SINGLE_VALUED = ("code", "state")


def _states_match(received: Optional[str], expected: Optional[str]) -> bool:
    if received is None or expected is None:
        return False
    return secrets.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def parse_callback_query(query_string: str) -> Result[dict[str, str]]:
    """Flatten a redirect query string into single values.

    A provider ``error`` is passed through no matter what else is in the
    query, and so is a query carrying no ``code`` at all, leaving the
    missing-code verdict to :func:`handle_callback`. Otherwise a ``code``
    or ``state`` given more than once with different values is rejected
    as ``invalid_request``.

    Returns:
        ``Ok`` with the first value of each parameter, or ``Err``.
    """
    params = parse_qs(query_string, keep_blank_values=True)
    flat = {key: values[0] for key, values in params.items()}
    if "error" in flat or not any(params.get("code", [])):
        return Ok(flat)
    for key in _SINGLE_VALUED:
        if len(set(params.get(key, []))) > 1:
            return Err(
                OAuthError(
                    OAuthErrorKind.INVALID_REQUEST,
                    description=f"conflicting values for '{key}'",
                )
            )
    return Ok(flat)


def handle_callback(session: SessionState, query: Mapping[str, str]) -> Result[None]:
    """Validate a redirect and store its authorization code in *session*.

    Checks run in strict priority order:

    1. ``error`` present -- classify it and fail.
    2. ``code`` absent -- fail with non-fatal ``no_auth_code``.
    3. ``state`` differs from ``session.csrf_state`` -- fail with
       ``invalid_returned_state``. Also fails when no attempt is in
       flight, so a code can never be injected into an idle session.
    4. Accept the code.

    Once a code has been accepted for the current attempt, a repeat of the
    same code succeeds without changes and a different code is refused
    with a non-fatal ``no_auth_code``.

    Args:
        session: The session holding the expected ``state``.
        query: Redirect query parameters, one value per key.

    Returns:
        ``Ok(None)`` when the code was accepted, otherwise ``Err``.
    """
    raw_error = query.get("error")
    if raw_error:
        oauth_error = classify_error(raw_error, query.get("error_description"))
        logger.info("Authorization server returned an error: %s", oauth_error.raw)
        return Err(oauth_error)

    code = query.get("code")
    if not code:
        return Err(OAuthError(OAuthErrorKind.NO_AUTH_CODE))

    with session.lock:
        if not _states_match(query.get("state"), session.csrf_state):
            logger.warning(
                "Callback state does not match the state that was sent; "
                "possible cross-site request forgery. The code was discarded."
            )
            return Err(OAuthError(OAuthErrorKind.INVALID_RETURNED_STATE))

        pending = session.authorization_code
        if pending is not None:
            if pending == code:
                return Ok(None)
            logger.info("Ignoring a second, different authorization code for this attempt")
            return Err(
                OAuthError(
                    OAuthErrorKind.NO_AUTH_CODE,
                    description="a different authorization code was already accepted",
                )
            )

        session.accept_code(code)
    return Ok(None)


# ---------------------------------------------------------------------------
# HTTP listener
# ---------------------------------------------------------------------------


_PAGE = (
    "<!doctype html><html><head><meta charset=\"utf-8\"><title>dashauth</title></head>"
    "<body><h2>{heading}</h2><p>{detail}</p></body></html>"
)


def _render(heading: str, detail: str) -> bytes:
    return _PAGE.format(heading=html.escape(heading), detail=html.escape(detail)).encode("utf-8")


class _CallbackServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], listener: "CallbackListener") -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def do_GET(self) -> None:
        status, body = self.server.listener.dispatch(self.path)
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback listener: " + format, *args)


class CallbackListener:
    """Local HTTP listener that resolves on the first definitive callback.

    A callback is *definitive* when it yields an accepted code or a fatal
    error. Requests without a code leave the listener waiting.

    Args:
        session: The session the callback is validated against.
        host: Interface to bind (the redirect URI's host).
        port: Port to bind. ``0`` picks a free port (see :attr:`port`).
        path: The redirect path; other paths get ``404``.
    """

    def __init__(self, session: SessionState, host: str, port: int, path: str) -> None:
        self._session = session
        self._host = host
        self._port = port
        self._path = path
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None
        self._deadline = 0.0
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._cancelled = False
        self._outcome: Optional[Result[None]] = None

    @property
    def port(self) -> int:
        """The bound port, once started."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._port

    @property
    def outcome(self) -> Optional[Result[None]]:
        return self._outcome

    def start(self, timeout: float) -> "CallbackListener":
        """Bind the listener and start serving in a background thread.

        Args:
            timeout: Seconds :meth:`wait` blocks before giving up.

        Returns:
            ``self``, so the call can be used in a ``with`` statement.

        Raises:
            AuthError: If the address cannot be bound (e.g. port in use).
        """
        if self._server is not None:
            raise RuntimeError("Callback listener already started")
        try:
            self._server = _CallbackServer((self._host, self._port), self)
        except OSError as exc:
            raise AuthError(
                f"Could not listen for the login callback on {self._host}:{self._port}: {exc}"
            ) from exc
        self._deadline = time.monotonic() + timeout
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="dashauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Listening for the login callback on %s:%d%s", self._host, self.port, self._path)
        return self

    def wait(self) -> Optional[Result[None]]:
        """Block until a definitive callback, the timeout, or :meth:`cancel`.

        The listener is stopped before returning. On timeout or
        cancellation the session's pending ``state`` and PKCE pair are
        cleared.

        Returns:
            The callback outcome, or ``None`` on timeout/cancellation.
        """
        remaining = max(0.0, self._deadline - time.monotonic())
        self._done.wait(remaining)
        with self._lock:
            outcome = None if self._cancelled else self._outcome
            if outcome is None:
                # Late callbacks must not resolve an abandoned attempt.
                self._cancelled = True
        self.stop()
        if outcome is None:
            logger.info("Gave up waiting for the login callback")
            self._session.abandon_authorization()
        return outcome

    def cancel(self) -> None:
        """Abort a pending :meth:`wait` from another thread."""
        with self._lock:
            self._cancelled = True
        self._done.set()

    def stop(self) -> None:
        """Shut the server down. Safe to call more than once."""
        server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "CallbackListener":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def dispatch(self, raw_path: str) -> tuple[int, bytes]:
        """Handle one request path and return ``(status, html_body)``."""
        parsed = urlparse(raw_path)
        if parsed.path != self._path:
            return 404, _render("Not found", "This address only accepts the login redirect.")

        with self._lock:
            if self._cancelled or self._outcome is not None:
                return 200, _render(
                    "Nothing to do",
                    "This login request has already been handled. You can close this window.",
                )

            result = parse_callback_query(parsed.query)
            if isinstance(result, Ok):
                result = handle_callback(self._session, result.value)

            if isinstance(result, Ok):
                self._resolve(result)
                return 200, _render(
                    "Login successful",
                    "You can close this window and return to the terminal.",
                )
            if not result.error.is_fatal:
                return 400, _render("No authorization code received", str(result.error))
            self._resolve(result)
            return 400, _render("Login failed", str(result.error))

    def _resolve(self, outcome: Result[None]) -> None:
        self._outcome = outcome
        self._done.set()
