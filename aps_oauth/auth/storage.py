"""In-memory token storage.

Holds at most one :class:`~aps_oauth.auth.tokens.TokenSet` for the lifetime
of the process. Tokens are never written to disk.
"""

from __future__ import annotations

import logging
import threading

from aps_oauth.auth.tokens import TokenSet

logger = logging.getLogger(__name__)


class TokenStore:
    """Single-slot, thread-safe token cache.

    Example:
        >>> store = TokenStore()
        >>> store.get() is None
        True
        >>> store.set(tokens)
        >>> store.get() is tokens
        True
    """

    def __init__(self) -> None:
        self._tokens: TokenSet | None = None
        self._lock = threading.Lock()

    def get(self) -> TokenSet | None:
        """Return the cached token set, or None if empty."""
        with self._lock:
            return self._tokens

    def set(self, tokens: TokenSet) -> None:
        """Replace the cached token set."""
        with self._lock:
            self._tokens = tokens
        logger.debug("Cached token set (expires_at=%d)", tokens.expires_at)

    def clear(self) -> None:
        """Drop the cached token set, if any."""
        with self._lock:
            self._tokens = None
        logger.debug("Cleared token cache")


__all__ = [
    "TokenStore",
]
