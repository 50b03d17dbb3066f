"""Authentication orchestrator: reuse, refresh, or re-authenticate.

:class:`AuthManager` is the single entry point the rest of an application
uses to obtain a valid token set. On each call it:

1. Returns the cached token set if it expires more than five minutes from now.
2. Otherwise refreshes it with the cached refresh token. A failed refresh
   clears the cache and falls through.
3. Otherwise runs the full browser-based authorization flow.

Concurrent callers are serialized so that at most one refresh or full flow
is in flight per manager.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from aps_oauth.auth.oauth import AuthorizationFlow, TokenClient
from aps_oauth.auth.storage import TokenStore
from aps_oauth.auth.tokens import SAFETY_BUFFER_MS, TokenSet, now_ms
from aps_oauth.config import OAuthConfig

logger = logging.getLogger(__name__)


class AuthManager:
    """Hands out a currently valid token set, refreshing or re-authenticating.

    Attributes:
        store: The token cache owned by this manager.

    Example:
        >>> manager = AuthManager(OAuthConfig.from_env())
        >>> tokens = manager.authenticate()  # browser opens on first call
        >>> tokens = manager.authenticate()  # cached, no network
    """

    def __init__(
        self,
        config: OAuthConfig,
        store: TokenStore | None = None,
        token_client: TokenClient | None = None,
        flow: AuthorizationFlow | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config
        self.store = store or TokenStore()
        self._token_client = token_client or TokenClient(config, clock=clock)
        self._flow = flow or AuthorizationFlow(config, token_client=self._token_client)
        self._clock = clock
        self._flight_lock = threading.Lock()

    def _cached_if_valid(self) -> TokenSet | None:
        tokens = self.store.get()
        if tokens is not None and tokens.is_valid(self._clock(), SAFETY_BUFFER_MS):
            return tokens
        return None

    def authenticate(self) -> TokenSet:
        """Return a currently valid token set.

        Returns:
            Cached, refreshed, or newly issued token set.

        Raises:
            AuthenticationError: If the full authorization flow fails.
        """
        tokens = self._cached_if_valid()
        if tokens is not None:
            return tokens

        with self._flight_lock:
            # Another caller may have refreshed while we waited
            tokens = self._cached_if_valid()
            if tokens is not None:
                return tokens

            cached = self.store.get()
            if cached is not None and cached.refresh_token:
                logger.info("Access token expired or expiring, refreshing")
                try:
                    tokens = self._token_client.refresh(cached.refresh_token)
                except Exception as e:
                    logger.warning(
                        "Token refresh failed, falling back to full authorization: %s",
                        e,
                    )
                    self.store.clear()
                else:
                    self.store.set(tokens)
                    return tokens

            logger.info("Starting full OAuth authorization flow")
            tokens = self._flow.run_full_flow()
            self.store.set(tokens)
            logger.info("Authenticated; token cached")
            return tokens

    def get_access_token(self) -> str:
        """Return just the bearer string of a currently valid token set."""
        return self.authenticate().access_token

    def clear_cache(self) -> None:
        """Forget the cached token set; the next call re-authenticates."""
        self.store.clear()


_default_manager: AuthManager | None = None
_default_manager_lock = threading.Lock()


def get_auth_manager() -> AuthManager:
    """Return the process-wide manager, configured from the environment on first use.

    Raises:
        ConfigurationError: If the environment is not configured.
    """
    global _default_manager
    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = AuthManager(OAuthConfig.from_env())
        return _default_manager


def authenticate() -> TokenSet:
    """Authenticate with the process-wide manager."""
    return get_auth_manager().authenticate()


def clear_cache() -> None:
    """Clear the process-wide manager's token cache, if one exists."""
    with _default_manager_lock:
        manager = _default_manager
    if manager is not None:
        manager.clear_cache()


__all__ = [
    "AuthManager",
    "authenticate",
    "clear_cache",
    "get_auth_manager",
]
