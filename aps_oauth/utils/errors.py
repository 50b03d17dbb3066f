"""Custom exception hierarchy for the APS OAuth client.

This module defines a structured exception hierarchy for the error conditions
that may occur while obtaining and refreshing OAuth tokens: configuration
problems, token endpoint failures, authorization callback errors and flow
timeouts.
"""

from __future__ import annotations


class APSAuthError(Exception):
    """Base exception for all APS OAuth client errors.

    All custom exceptions in this package inherit from this base class,
    enabling consistent error handling and catch-all exception handling patterns.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(APSAuthError):
    """Exception raised when the OAuth client configuration is missing or invalid.

    Examples:
        - APS_CLIENT_ID or APS_CLIENT_SECRET not set
        - Callback port outside the valid TCP range
        - Non-numeric timeout values
    """

    pass


class AuthenticationError(APSAuthError):
    """Exception raised when a valid token set cannot be obtained.

    This is the terminal failure surfaced by ``authenticate()`` once every
    fallback (cached token, refresh, full authorization flow) is exhausted.

    Examples:
        - User denied consent in the browser
        - Callback listener could not bind its port
        - Token endpoint unreachable
    """

    pass


class TokenExchangeError(AuthenticationError):
    """Exception raised when the token endpoint rejects a request.

    Raised for non-success HTTP statuses during a refresh or an
    authorization code exchange, and for success responses whose body is
    not a usable token payload.

    Attributes:
        status_code: HTTP status code from the token endpoint.
        status_text: HTTP reason phrase from the token endpoint.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the token exchange exception.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code from the token endpoint.
            status_text: HTTP reason phrase from the token endpoint.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, details)
        self.status_code = status_code
        self.status_text = status_text


class OAuthCallbackError(AuthenticationError):
    """Exception raised when the authorization server redirects with an error.

    Attributes:
        error: Value of the ``error`` query parameter (e.g. ``access_denied``).
        error_description: Value of ``error_description``, if present.
    """

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the callback error exception.

        Args:
            error: Value of the ``error`` query parameter.
            error_description: Value of the ``error_description`` parameter.
            details: Optional dictionary containing additional error context.
        """
        message = f"OAuth error: {error}"
        if error_description:
            message = f"{message} - {error_description}"
        super().__init__(message, details)
        self.error = error
        self.error_description = error_description


class AuthenticationTimeoutError(AuthenticationError):
    """Exception raised when no decisive callback arrives before the deadline.

    Attributes:
        timeout_seconds: The deadline that expired.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: float | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.timeout_seconds = timeout_seconds


class BrowserLaunchError(APSAuthError):
    """Exception raised when the system browser cannot be opened.

    Never fatal: the authorization flow logs it and keeps waiting for the
    user to open the authorization URL manually.
    """

    pass


__all__ = [
    "APSAuthError",
    "ConfigurationError",
    "AuthenticationError",
    "TokenExchangeError",
    "OAuthCallbackError",
    "AuthenticationTimeoutError",
    "BrowserLaunchError",
]
