"""OAuth 2.0 authorization code client with self-refreshing token cache."""

from aps_oauth.auth import AuthManager, TokenSet, authenticate, clear_cache
from aps_oauth.config import OAuthConfig
from aps_oauth.utils.errors import AuthenticationError

__version__ = "0.1.0"

__all__ = [
    "AuthManager",
    "AuthenticationError",
    "OAuthConfig",
    "TokenSet",
    "authenticate",
    "clear_cache",
]
