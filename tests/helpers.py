"""Shared helpers for APS OAuth client tests."""

from __future__ import annotations

import socket
from typing import Any
from unittest.mock import MagicMock

import requests

FIXED_NOW_MS = 1_700_000_000_000


def find_free_port() -> int:
    """Find a free local port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def loopback_get(url: str) -> requests.Response:
    """GET a loopback URL, ignoring any proxy settings from the environment."""
    with requests.Session() as session:
        session.trust_env = False
        return session.get(url, timeout=5)


def make_response(
    status_code: int = 200,
    reason: str = "OK",
    payload: Any = None,
) -> MagicMock:
    """Build a mock requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    response.ok = status_code < 400
    response.json.return_value = payload
    return response
