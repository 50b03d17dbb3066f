"""Authentication module for the APS OAuth client.

This module provides OAuth 2.0 authorization code authentication, including:

- In-memory token caching with a five minute expiry safety buffer
- Silent token refresh using the cached refresh token
- Interactive browser flow with a local callback listener
- Token endpoint client with HTTP Basic client authentication

Usage:
    >>> from aps_oauth.auth import AuthManager
    >>> from aps_oauth.config import OAuthConfig
    >>>
    >>> manager = AuthManager(OAuthConfig.from_env())
    >>>
    >>> # First call opens the browser; later calls reuse or refresh
    >>> tokens = manager.authenticate()
    >>> headers = {"Authorization": tokens.authorization_header}
"""

from aps_oauth.auth.callback import (
    AuthorizationState,
    CallbackServer,
    OAuthCallbackHandler,
    PendingAuthorization,
)
from aps_oauth.auth.manager import (
    AuthManager,
    authenticate,
    clear_cache,
    get_auth_manager,
)
from aps_oauth.auth.oauth import AuthorizationFlow, TokenClient, open_browser
from aps_oauth.auth.storage import TokenStore
from aps_oauth.auth.tokens import SAFETY_BUFFER_MS, TokenSet, now_ms

__all__ = [
    # Orchestrator
    "AuthManager",
    "authenticate",
    "clear_cache",
    "get_auth_manager",
    # OAuth flow
    "AuthorizationFlow",
    "TokenClient",
    "open_browser",
    # Callback listener
    "AuthorizationState",
    "CallbackServer",
    "OAuthCallbackHandler",
    "PendingAuthorization",
    # Tokens
    "TokenStore",
    "TokenSet",
    "SAFETY_BUFFER_MS",
    "now_ms",
]
