"""Tests for the authentication audit logger."""

from __future__ import annotations

import json

from aps_oauth.utils.audit_logger import AuditLogger, AuthEvent
from aps_oauth.utils.errors import TokenExchangeError


def _read_entries(capsys) -> list[dict]:
    err = capsys.readouterr().err
    return [json.loads(line)["audit"] for line in err.splitlines() if line.strip()]


class TestAuditLogger:
    """Tests for AuditLogger output."""

    def test_log_attempt_writes_json_line(self, capsys):
        """Test an attempt is written to stderr as JSON."""
        AuditLogger().log_attempt("token", {"grant_type": "refresh_token"})

        [entry] = _read_entries(capsys)
        assert entry["event"] == "attempt"
        assert entry["endpoint"] == "token"
        assert entry["context"] == {"grant_type": "refresh_token"}
        assert entry["status"] is None

    def test_log_success_includes_duration(self, capsys):
        """Test success entries carry status and duration."""
        AuditLogger().log_success("authorize", {"port": 3000}, duration_ms=12.5)

        [entry] = _read_entries(capsys)
        assert entry["status"] == "success"
        assert entry["duration_ms"] == 12.5

    def test_log_failure_includes_message_and_cause(self, capsys):
        """Test failure entries carry the error message and its cause."""
        try:
            try:
                raise ConnectionError("connection reset")
            except ConnectionError as cause:
                raise TokenExchangeError(
                    "Token request failed: 401 Unauthorized",
                    status_code=401,
                    status_text="Unauthorized",
                ) from cause
        except TokenExchangeError as e:
            AuditLogger().log_failure("token", e)

        [entry] = _read_entries(capsys)
        assert entry["status"] == "error"
        assert "401 Unauthorized" in entry["error_message"]
        assert "connection reset" in entry["error_cause"]

    def test_sensitive_context_is_redacted(self, capsys):
        """Test tokens, secrets and codes never reach the log."""
        AuditLogger().log_attempt(
            "token",
            {
                "refresh_token": "a-very-long-refresh-token-value",
                "client_secret": "s3cret",
                "nested": {"code": "xyz"},
                "grant_type": "refresh_token",
            },
        )

        [entry] = _read_entries(capsys)
        assert entry["context"]["refresh_token"].endswith("[REDACTED]")
        assert "refresh-token-value" not in entry["context"]["refresh_token"]
        assert entry["context"]["client_secret"] == "[REDACTED]"
        assert entry["context"]["nested"]["code"] == "[REDACTED]"
        assert entry["context"]["grant_type"] == "refresh_token"

    def test_disabled_logger_writes_nothing(self, capsys):
        """Test a disabled logger is silent."""
        logger = AuditLogger(enabled=False)

        logger.log(AuthEvent(event="attempt", endpoint="token"))

        assert capsys.readouterr().err == ""
        assert logger.enabled is False
