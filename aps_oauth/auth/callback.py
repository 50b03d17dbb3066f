"""Local callback listener for the OAuth authorization redirect.

The authorization server redirects the browser to a loopback URI carrying
either a ``code`` or an ``error`` query parameter. :class:`CallbackServer`
listens on that URI in a background thread and settles a
:class:`PendingAuthorization`, which the flow runner waits on with a deadline.

Whichever of the three outcomes happens first wins: code received, error
received, or deadline expired. Later transitions are ignored.
"""

from __future__ import annotations

import errno
import html
import logging
import threading
from enum import Enum
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from aps_oauth.utils.errors import (
    AuthenticationError,
    AuthenticationTimeoutError,
    OAuthCallbackError,
)

logger = logging.getLogger(__name__)

SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>Tokens cached. You can close this window and return to the "
    b"application.</p></body></html>"
)

INVALID_REQUEST_PAGE = (
    b"<html><body><h1>Invalid Request</h1>"
    b"<p>No authorization code received.</p></body></html>"
)


def _failure_page(error: str) -> bytes:
    return (
        "<html><body><h1>Authentication Failed</h1>"
        f"<p><code>{html.escape(error)}</code></p>"
        "<p>You can close this window.</p></body></html>"
    ).encode()


class AuthorizationState(str, Enum):
    """State of a pending authorization request.

    Attributes:
        WAITING: No decisive callback yet.
        RESOLVED: Authorization code received.
        REJECTED: Authorization server redirected with an error.
        TIMED_OUT: Deadline expired before a decisive callback.
    """

    WAITING = "waiting"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


class PendingAuthorization:
    """Single-resolution outcome of one authorization redirect.

    Only the first transition out of WAITING has any effect; resolve(),
    reject() and expire() return whether their transition won.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._state = AuthorizationState.WAITING
        self._code: str | None = None
        self._error: str | None = None
        self._error_description: str | None = None
        self._timeout: float | None = None

    @property
    def state(self) -> AuthorizationState:
        return self._state

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def _transition(self, state: AuthorizationState, **values: Any) -> bool:
        with self._lock:
            if self._state is not AuthorizationState.WAITING:
                return False
            self._state = state
            for name, value in values.items():
                setattr(self, f"_{name}", value)
            self._settled.set()
        logger.debug("Authorization request %s", state.value)
        return True

    def resolve(self, code: str) -> bool:
        """Settle with an authorization code."""
        return self._transition(AuthorizationState.RESOLVED, code=code)

    def reject(self, error: str, error_description: str | None = None) -> bool:
        """Settle with an OAuth error returned on the redirect."""
        return self._transition(
            AuthorizationState.REJECTED,
            error=error,
            error_description=error_description,
        )

    def expire(self, timeout: float | None = None) -> bool:
        """Settle as timed out."""
        return self._transition(AuthorizationState.TIMED_OUT, timeout=timeout)

    def wait(self, timeout: float) -> AuthorizationState:
        """Block until settled or until ``timeout`` seconds elapse.

        On deadline the request is expired, unless a callback won the race
        in the meantime.
        """
        if not self._settled.wait(timeout):
            self.expire(timeout)
        return self._state

    def outcome(self) -> str:
        """Return the authorization code or raise the settled failure.

        Raises:
            OAuthCallbackError: If the redirect carried an error.
            AuthenticationTimeoutError: If the deadline expired.
            AuthenticationError: If the request has not settled.
        """
        state = self._state
        if state is AuthorizationState.RESOLVED and self._code is not None:
            return self._code
        if state is AuthorizationState.REJECTED:
            raise OAuthCallbackError(
                self._error or "unknown_error",
                self._error_description,
            )
        if state is AuthorizationState.TIMED_OUT:
            minutes = (self._timeout or 0) / 60
            raise AuthenticationTimeoutError(
                f"OAuth authentication timed out after {minutes:g} minutes",
                timeout_seconds=self._timeout,
            )
        raise AuthenticationError("Authorization request has not completed")


class OAuthCallbackHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the OAuth redirect.

    ``error`` takes precedence over ``code`` when both are present. Requests
    carrying neither (favicon probes and the like) get a 400 and leave the
    pending request untouched.
    """

    server: CallbackServer

    def do_GET(self) -> None:  # noqa: N802
        # An empty error= still rejects
        params = parse_qs(urlparse(self.path).query, keep_blank_values=True)
        pending = self.server.pending

        if "error" in params:
            error = params["error"][0]
            description = params.get("error_description", [None])[0]
            self._respond(400, _failure_page(error))
            if pending.reject(error, description):
                logger.warning("Authorization server returned error: %s", error)
            return

        code = params.get("code", [None])[0]
        if code:
            self._respond(200, SUCCESS_PAGE)
            if pending.resolve(code):
                logger.info("Received authorization code")
            return

        logger.debug("Ignoring callback request without code or error: %s", self.path)
        self._respond(400, INVALID_REQUEST_PAGE)

    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("OAuth callback server: %s", format % args)


class CallbackServer(HTTPServer):
    """One-shot loopback HTTP listener bound to the redirect URI port.

    The socket is bound on construction. ``start()`` serves requests on a
    daemon thread; ``close()`` stops the thread and releases the port.

    Usage:
        with CallbackServer(pending, port=3000) as server:
            server.start()
            pending.wait(timeout=300)
    """

    def __init__(
        self,
        pending: PendingAuthorization,
        host: str = "localhost",
        port: int = 3000,
    ) -> None:
        self.pending = pending
        self._thread: threading.Thread | None = None
        try:
            super().__init__((host, port), OAuthCallbackHandler)
        except OSError as e:
            # socket.gaierror (unresolvable host) is an OSError too
            if e.errno == errno.EADDRINUSE:
                hint = "Another process is using the callback port"
            else:
                hint = "Check the host and port of the redirect URI"
            raise AuthenticationError(
                f"Could not bind OAuth callback listener to {host}:{port}: {e}",
                details={"host": host, "port": port, "errno": e.errno, "hint": hint},
            ) from e
        logger.debug("OAuth callback server bound to %s:%d", host, self.port)

    @property
    def port(self) -> int:
        return self.server_address[1]

    def start(self) -> None:
        """Serve requests on a background thread."""
        self._thread = threading.Thread(
            target=self.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="oauth-callback-server",
            daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        """Stop serving and release the listening socket."""
        if self._thread is not None:
            self.shutdown()
            self._thread.join(timeout=1)
            self._thread = None
        self.server_close()
        logger.debug("OAuth callback server closed")

    def __enter__(self) -> CallbackServer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


__all__ = [
    "AuthorizationState",
    "PendingAuthorization",
    "OAuthCallbackHandler",
    "CallbackServer",
]
