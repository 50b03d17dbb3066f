"""Audit logging for OAuth token requests and authorization flows."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AuthEvent(BaseModel):
    """Model for an authentication audit log entry."""

    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="ISO format timestamp",
    )
    event: str = Field(..., description="Event type (attempt/success/failure)")
    endpoint: str = Field(..., description="Logical endpoint name (token, authorize)")
    status: str | None = Field(
        default=None,
        description="Result status (success/error)",
    )
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Identifying context (sensitive data redacted)",
    )
    error_message: str | None = Field(
        default=None,
        description="Error message if failed",
    )
    error_cause: str | None = Field(
        default=None,
        description="Underlying cause of the error, if any",
    )
    duration_ms: float | None = Field(
        default=None,
        description="Elapsed time in milliseconds",
    )


class AuditLogger:
    """Audit logger that writes auth events to stderr as JSON lines.

    Output is informational only: nothing in the authentication flow reads
    it back or changes behavior based on it.
    """

    SENSITIVE_KEYS = {
        "token",
        "secret",
        "code",
        "password",
        "credential",
        "access_token",
        "refresh_token",
        "client_secret",
        "authorization",
        "bearer",
    }

    def __init__(self, enabled: bool = True):
        """Initialize audit logger.

        Args:
            enabled: Whether audit logging is enabled.
        """
        self._enabled = enabled
        logger.debug("AuditLogger initialized (enabled=%s)", enabled)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _redact_sensitive(self, context: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive values from event context."""
        redacted: dict[str, Any] = {}
        for key, value in context.items():
            if key.lower() in self.SENSITIVE_KEYS:
                if isinstance(value, str) and len(value) > 20:
                    redacted[key] = f"{value[:6]}...[REDACTED]"
                else:
                    redacted[key] = "[REDACTED]"
            elif isinstance(value, dict):
                redacted[key] = self._redact_sensitive(value)
            else:
                redacted[key] = value
        return redacted

    def log(self, entry: AuthEvent) -> None:
        """Write audit entry to stderr.

        Args:
            entry: The audit entry to log.
        """
        if not self._enabled:
            return

        try:
            line = json.dumps({"audit": entry.model_dump()}, default=str)
            print(line, file=sys.stderr, flush=True)
        except Exception as e:
            logger.error("Failed to write audit log: %s", e)

    def log_attempt(self, endpoint: str, context: dict[str, Any] | None = None) -> None:
        """Log that a request to an endpoint is about to be made.

        Args:
            endpoint: Logical endpoint name.
            context: Optional identifying context (will be redacted).
        """
        self.log(
            AuthEvent(
                event="attempt",
                endpoint=endpoint,
                context=self._redact_sensitive(context or {}),
            )
        )

    def log_success(
        self,
        endpoint: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a successful request.

        Args:
            endpoint: Logical endpoint name.
            context: Optional identifying context (will be redacted).
            duration_ms: Elapsed time in milliseconds.
        """
        self.log(
            AuthEvent(
                event="success",
                endpoint=endpoint,
                status="success",
                context=self._redact_sensitive(context or {}),
                duration_ms=duration_ms,
            )
        )

    def log_failure(
        self,
        endpoint: str,
        error: BaseException,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a failed request along with its message and cause.

        Args:
            endpoint: Logical endpoint name.
            error: The exception that ended the request.
            context: Optional identifying context (will be redacted).
            duration_ms: Elapsed time in milliseconds.
        """
        cause = error.__cause__ or error.__context__
        self.log(
            AuthEvent(
                event="failure",
                endpoint=endpoint,
                status="error",
                context=self._redact_sensitive(context or {}),
                error_message=str(error),
                error_cause=repr(cause) if cause is not None else None,
                duration_ms=duration_ms,
            )
        )


def _audit_enabled() -> bool:
    return os.getenv("AUDIT_LOG", "true").lower() not in ("false", "0", "no")


# Global singleton
audit_logger = AuditLogger(enabled=_audit_enabled())


__all__ = [
    "AuthEvent",
    "AuditLogger",
    "audit_logger",
]
