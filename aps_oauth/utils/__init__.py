"""Utility functions and helpers for the APS OAuth client.

This module provides the exception hierarchy and the audit logger shared
by the authentication components.
"""

from aps_oauth.utils.audit_logger import AuditLogger, AuthEvent, audit_logger
from aps_oauth.utils.errors import (
    APSAuthError,
    AuthenticationError,
    AuthenticationTimeoutError,
    BrowserLaunchError,
    ConfigurationError,
    OAuthCallbackError,
    TokenExchangeError,
)

__all__ = [
    # Audit logging
    "AuthEvent",
    "AuditLogger",
    "audit_logger",
    # Exception hierarchy
    "APSAuthError",
    "ConfigurationError",
    "AuthenticationError",
    "TokenExchangeError",
    "OAuthCallbackError",
    "AuthenticationTimeoutError",
    "BrowserLaunchError",
]
