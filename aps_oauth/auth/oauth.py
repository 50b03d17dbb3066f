"""OAuth 2.0 authorization code flow for APS API access.

This module provides the two network-facing halves of the 3-legged flow:

1. Token endpoint client: exchanges an authorization code, or a refresh
   token, for a new :class:`~aps_oauth.auth.tokens.TokenSet`. Both requests
   are form-encoded POSTs authenticated with HTTP Basic client credentials.

2. Authorization flow runner: builds the authorization URL, starts the
   loopback callback listener, opens the user's browser and waits for the
   redirect, then exchanges the code.

Security considerations:
- Client credentials are sent only to the token endpoint, never to the browser
- The authorization URL carries no ``state`` or PKCE challenge
- The callback listener binds the loopback host from the redirect URI only
"""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from collections.abc import Callable
from urllib.parse import urlencode

import requests
from requests.auth import HTTPBasicAuth

from aps_oauth.auth.callback import CallbackServer, PendingAuthorization
from aps_oauth.auth.tokens import TokenSet, now_ms
from aps_oauth.config import OAuthConfig
from aps_oauth.utils.audit_logger import AuditLogger, audit_logger
from aps_oauth.utils.errors import (
    AuthenticationError,
    BrowserLaunchError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)


class TokenClient:
    """Client for the OAuth token endpoint.

    Attributes:
        _config: OAuth client configuration.
        _clock: Source of the local issue time used to derive expiry.

    Example:
        >>> client = TokenClient(config)
        >>> tokens = client.exchange_code("xyz")
        >>> tokens = client.refresh(tokens.refresh_token)
    """

    def __init__(
        self,
        config: OAuthConfig,
        clock: Callable[[], int] = now_ms,
        audit: AuditLogger | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._audit = audit or audit_logger

    def exchange_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the OAuth callback.

        Returns:
            Newly minted token set.

        Raises:
            TokenExchangeError: If the token endpoint rejects the code.
            AuthenticationError: If the token endpoint is unreachable.
        """
        return self._request_tokens(
            "authorization_code",
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._config.redirect_uri,
            },
        )

    def refresh(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new token set, without user interaction.

        Args:
            refresh_token: Refresh token from a previous token set.

        Returns:
            Newly minted token set. If the server does not rotate the refresh
            token, the one passed in is kept.

        Raises:
            TokenExchangeError: If the token endpoint rejects the refresh token.
            AuthenticationError: If the token endpoint is unreachable.
        """
        tokens = self._request_tokens(
            "refresh_token",
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        if tokens.refresh_token is None:
            logger.debug("Refresh response carried no refresh token, keeping the old one")
            tokens = tokens.model_copy(update={"refresh_token": refresh_token})
        return tokens

    def _request_tokens(self, grant: str, data: dict[str, str]) -> TokenSet:
        context = {"grant_type": grant, "client_id": self._config.client_id}
        self._audit.log_attempt("token", context)
        started = time.monotonic()

        try:
            tokens = self._post(grant, data)
        except AuthenticationError as e:
            self._audit.log_failure(
                "token", e, context, (time.monotonic() - started) * 1000
            )
            raise

        self._audit.log_success("token", context, (time.monotonic() - started) * 1000)
        logger.info("Token request succeeded (grant_type=%s)", grant)
        return tokens

    def _post(self, grant: str, data: dict[str, str]) -> TokenSet:
        try:
            response = requests.post(
                self._config.token_url,
                data=data,
                auth=HTTPBasicAuth(self._config.client_id, self._config.client_secret),
                headers={"Accept": "application/json"},
                timeout=self._config.request_timeout,
            )
        except requests.RequestException as e:
            logger.error("Network error calling token endpoint: %s", e)
            raise AuthenticationError(
                f"Network error calling token endpoint: {e}",
                details={"grant_type": grant, "error_type": type(e).__name__},
            ) from e

        issued_at = self._clock()

        if not response.ok:
            logger.error(
                "Token request failed (grant_type=%s): %s %s",
                grant,
                response.status_code,
                response.reason,
            )
            raise TokenExchangeError(
                f"Token request failed: {response.status_code} {response.reason}",
                status_code=response.status_code,
                status_text=response.reason,
                details={"grant_type": grant},
            )

        try:
            return TokenSet.from_response(response.json(), issued_at_ms=issued_at)
        except (ValueError, TypeError, AttributeError) as e:
            # ValueError also covers JSON decode and pydantic validation errors
            logger.error("Token endpoint returned an unusable payload: %s", e)
            raise TokenExchangeError(
                "Token endpoint returned an unusable payload",
                status_code=response.status_code,
                status_text=response.reason,
                details={"grant_type": grant, "error_type": type(e).__name__},
            ) from e


def open_browser(url: str) -> None:
    """Open the platform default browser at ``url``.

    Raises:
        BrowserLaunchError: If no browser could be launched.
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        raise BrowserLaunchError(
            f"Could not open browser: {e}",
            details={"error_type": type(e).__name__},
        ) from e
    if not opened:
        raise BrowserLaunchError("No runnable browser found")


class AuthorizationFlow:
    """Runs the interactive part of the authorization code flow.

    Example:
        >>> flow = AuthorizationFlow(config)
        >>> tokens = flow.run_full_flow()  # opens browser
    """

    def __init__(
        self,
        config: OAuthConfig,
        token_client: TokenClient | None = None,
        browser_launcher: Callable[[str], None] = open_browser,
        audit: AuditLogger | None = None,
    ) -> None:
        self._config = config
        self._token_client = token_client or TokenClient(config)
        self._browser_launcher = browser_launcher
        self._audit = audit or audit_logger

    def build_authorization_url(self) -> str:
        """Build the authorization endpoint URL the user is sent to.

        Deterministic for a given configuration.
        """
        params = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "scope": " ".join(self._config.scopes),
        }
        return f"{self._config.authorize_url}?{urlencode(params)}"

    def run_full_flow(self) -> TokenSet:
        """Run the complete browser-based flow and exchange the code.

        Returns:
            Newly minted token set.

        Raises:
            OAuthCallbackError: If the redirect carries an ``error``.
            AuthenticationTimeoutError: If no decisive redirect arrives in time.
            TokenExchangeError: If the code exchange is rejected.
            AuthenticationError: If the listener cannot bind or the token
                endpoint is unreachable.
        """
        auth_url = self.build_authorization_url()
        code = self.wait_for_code(auth_url)
        return self._token_client.exchange_code(code)

    def wait_for_code(self, auth_url: str | None = None) -> str:
        """Open the browser and wait for the redirect to the callback listener.

        The listener is closed before this returns or raises.

        Args:
            auth_url: URL to open; built from configuration when omitted.

        Returns:
            The authorization code.
        """
        auth_url = auth_url or self.build_authorization_url()
        context = {"port": self._config.callback_port}
        self._audit.log_attempt("authorize", context)
        started = time.monotonic()
        pending = PendingAuthorization()

        try:
            with CallbackServer(
                pending,
                host=self._config.callback_host,
                port=self._config.callback_port,
            ) as server:
                server.start()
                logger.info("Waiting for authorization on port %d...", server.port)
                logger.info("If the browser does not open, visit: %s", auth_url)
                self._launch_browser(auth_url)
                pending.wait(self._config.flow_timeout)
            code = pending.outcome()
        except AuthenticationError as e:
            logger.error("Authorization failed: %s", e)
            self._audit.log_failure(
                "authorize", e, context, (time.monotonic() - started) * 1000
            )
            raise

        self._audit.log_success(
            "authorize", context, (time.monotonic() - started) * 1000
        )
        return code

    def _launch_browser(self, url: str) -> None:
        """Open the browser on a background thread; failures are only logged."""

        def launch() -> None:
            try:
                self._browser_launcher(url)
            except Exception as e:
                logger.warning("Failed to open browser automatically: %s", e)
                logger.warning("Please open this URL manually: %s", url)

        threading.Thread(target=launch, name="oauth-browser-launch", daemon=True).start()


__all__ = [
    "TokenClient",
    "AuthorizationFlow",
    "open_browser",
]
