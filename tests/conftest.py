"""Pytest configuration and fixtures for APS OAuth client tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from aps_oauth.auth.tokens import TokenSet
from aps_oauth.config import OAuthConfig
from aps_oauth.utils.audit_logger import AuditLogger

from tests.helpers import FIXED_NOW_MS, find_free_port


@pytest.fixture
def callback_port() -> int:
    """Fixture providing a free port for the callback listener."""
    return find_free_port()


@pytest.fixture
def oauth_config(callback_port: int) -> OAuthConfig:
    """Fixture providing a test OAuth configuration on a free loopback port."""
    return OAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        authorize_url="https://auth.example.com/authorize",
        token_url="https://auth.example.com/token",
        redirect_uri=f"http://127.0.0.1:{callback_port}/callback",
        scopes=("data:read", "data:write"),
        callback_port=callback_port,
        flow_timeout=5,
    )


@pytest.fixture
def mock_token() -> dict[str, Any]:
    """Fixture providing mock token endpoint response data."""
    return {
        "access_token": "mock-access-token",
        "refresh_token": "mock-refresh-token",
        "token_type": "Bearer",
        "expires_in": 3600,
    }


@pytest.fixture
def clock() -> MagicMock:
    """Fixture providing a controllable epoch-millisecond clock."""
    return MagicMock(return_value=FIXED_NOW_MS)


@pytest.fixture
def quiet_audit() -> AuditLogger:
    """Fixture providing a disabled audit logger."""
    return AuditLogger(enabled=False)


@pytest.fixture
def make_tokens():
    """Fixture providing a TokenSet factory relative to FIXED_NOW_MS."""

    def _make(
        expires_in_ms: int = 3_600_000,
        access_token: str = "cached-access-token",
        refresh_token: str | None = "cached-refresh-token",
    ) -> TokenSet:
        return TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=max(expires_in_ms // 1000, 0),
            expires_at=FIXED_NOW_MS + expires_in_ms,
        )

    return _make
