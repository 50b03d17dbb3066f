"""OAuth token set model and expiry arithmetic.

A :class:`TokenSet` is minted from a token endpoint response at the moment
the response is received. Its absolute expiry is derived once from the
local clock and never recomputed.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Tokens expiring within this window are treated as already expired
SAFETY_BUFFER_MS = 5 * 60 * 1000


def now_ms() -> int:
    """Current local time in epoch milliseconds."""
    return int(time.time() * 1000)


class TokenSet(BaseModel):
    """Immutable set of tokens issued by the authorization server.

    Attributes:
        access_token: Bearer credential for API calls.
        refresh_token: Credential for obtaining a new access token, if issued.
        token_type: Token type, typically "Bearer".
        expires_in: Lifetime in seconds as returned by the server.
        expires_at: Absolute expiry in epoch milliseconds, derived locally.
        scope: Granted scope string, when the server echoes one.

    Example:
        >>> tokens = TokenSet.from_response(
        ...     {"access_token": "A1", "refresh_token": "R1", "expires_in": 3600},
        ...     issued_at_ms=1_000,
        ... )
        >>> tokens.expires_at
        3601000
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1, repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    token_type: str = Field(default="Bearer")
    expires_in: int = Field(..., ge=0)
    expires_at: int = Field(..., description="Epoch milliseconds")
    scope: str | None = Field(default=None)

    @classmethod
    def from_response(
        cls, payload: Mapping[str, Any], issued_at_ms: int | None = None
    ) -> TokenSet:
        """Mint a token set from a token endpoint JSON body.

        Args:
            payload: Parsed JSON object from the token endpoint.
            issued_at_ms: Local issue time; defaults to now.

        Returns:
            TokenSet with ``expires_at`` = issue time + ``expires_in`` * 1000.

        Raises:
            pydantic.ValidationError: If required fields are missing or invalid.
        """
        issued_at = now_ms() if issued_at_ms is None else issued_at_ms
        fields = {
            key: payload[key]
            for key in ("access_token", "refresh_token", "token_type", "expires_in", "scope")
            if payload.get(key) is not None
        }
        expires_in = int(fields.get("expires_in", 0))
        return cls(**fields, expires_at=issued_at + expires_in * 1000)

    def is_valid(self, at_ms: int | None = None, buffer_ms: int = SAFETY_BUFFER_MS) -> bool:
        """Check whether the access token is usable past the safety buffer."""
        current = now_ms() if at_ms is None else at_ms
        return self.expires_at > current + buffer_ms

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    @property
    def authorization_header(self) -> str:
        """Value for an HTTP ``Authorization`` header."""
        return f"{self.token_type} {self.access_token}"


__all__ = [
    "SAFETY_BUFFER_MS",
    "TokenSet",
    "now_ms",
]
