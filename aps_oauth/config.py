"""OAuth client configuration.

Configuration is read once from environment variables (optionally populated
from a ``.env`` file by the entry point) and validated into an immutable
:class:`OAuthConfig`. Every authentication component receives the config it
needs explicitly; nothing below this module reads the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from aps_oauth.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Autodesk Platform Services OAuth endpoints
APS_AUTHORIZE_URL = "https://developer.api.autodesk.com/authentication/v2/authorize"
APS_TOKEN_URL = "https://developer.api.autodesk.com/authentication/v2/token"

DEFAULT_SCOPES = ("data:read",)
DEFAULT_CALLBACK_PORT = 3000
DEFAULT_FLOW_TIMEOUT = 300.0
DEFAULT_REQUEST_TIMEOUT = 30.0


def default_redirect_uri(port: int) -> str:
    """Build the loopback redirect URI for a callback port."""
    return f"http://localhost:{port}/callback"


def redirect_port(redirect_uri: str) -> int:
    """Port a redirect URI points at, using the scheme default when omitted.

    Raises:
        ValueError: If the URI carries a malformed port.
    """
    parsed = urlparse(redirect_uri)
    if parsed.port is not None:
        return parsed.port
    return 443 if parsed.scheme == "https" else 80


def parse_scopes(raw: str) -> tuple[str, ...]:
    """Split a space- or comma-separated scope string, keeping order."""
    return tuple(part for part in raw.replace(",", " ").split() if part)


class OAuthConfig(BaseModel):
    """Validated, read-only OAuth client configuration.

    Attributes:
        client_id: Registered OAuth client ID.
        client_secret: Registered OAuth client secret.
        authorize_url: Authorization endpoint the browser is sent to.
        token_url: Token endpoint for code exchange and refresh.
        redirect_uri: Redirect URI registered with the authorization server.
        scopes: Requested scopes, in order.
        callback_port: Local port the callback listener binds. Taken from
            the redirect URI when omitted, and must agree with it.
        flow_timeout: Seconds to wait for the browser redirect.
        request_timeout: Seconds before a token endpoint request is abandoned.

    Example:
        >>> config = OAuthConfig(client_id="abc", client_secret="s3cret")
        >>> config.redirect_uri
        'http://localhost:3000/callback'
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1, description="OAuth client ID")
    client_secret: str = Field(..., min_length=1, description="OAuth client secret")
    authorize_url: str = Field(default=APS_AUTHORIZE_URL, min_length=1)
    token_url: str = Field(default=APS_TOKEN_URL, min_length=1)
    redirect_uri: str = Field(default="", description="Defaults to localhost callback")
    scopes: tuple[str, ...] = Field(default=DEFAULT_SCOPES, min_length=1)
    callback_port: int = Field(default=DEFAULT_CALLBACK_PORT, ge=1, le=65535)
    flow_timeout: float = Field(default=DEFAULT_FLOW_TIMEOUT, gt=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _fill_redirect_uri(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if not data.get("redirect_uri"):
            port = data.get("callback_port", DEFAULT_CALLBACK_PORT)
            data = {**data, "redirect_uri": default_redirect_uri(port)}
        elif data.get("callback_port") is None:
            data = {**data, "callback_port": redirect_port(data["redirect_uri"])}
        return data

    @model_validator(mode="after")
    def _check_callback_port(self) -> OAuthConfig:
        # The browser is sent to the redirect URI, so the listener must be there
        port = redirect_port(self.redirect_uri)
        if port != self.callback_port:
            raise ValueError(
                f"callback_port {self.callback_port} does not match "
                f"redirect URI port {port}"
            )
        return self

    @property
    def callback_host(self) -> str:
        """Host name the callback listener binds, taken from the redirect URI."""
        return urlparse(self.redirect_uri).hostname or "localhost"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OAuthConfig:
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Validated configuration.

        Raises:
            ConfigurationError: If required variables are missing or any
                value fails validation.
        """
        env = os.environ if environ is None else environ

        missing = [
            var for var in ("APS_CLIENT_ID", "APS_CLIENT_SECRET") if not env.get(var)
        ]
        if missing:
            raise ConfigurationError(
                "OAuth not configured",
                details={
                    "missing": missing,
                    "hint": "Set APS_CLIENT_ID and APS_CLIENT_SECRET "
                    "environment variables",
                },
            )

        data: dict[str, Any] = {
            "client_id": env["APS_CLIENT_ID"],
            "client_secret": env["APS_CLIENT_SECRET"],
        }
        optional = {
            "APS_AUTHORIZE_URL": "authorize_url",
            "APS_TOKEN_URL": "token_url",
            "APS_REDIRECT_URI": "redirect_uri",
            "APS_CALLBACK_PORT": "callback_port",
            "APS_OAUTH_TIMEOUT": "flow_timeout",
            "APS_REQUEST_TIMEOUT": "request_timeout",
        }
        for var, field_name in optional.items():
            if env.get(var):
                data[field_name] = env[var]
        if env.get("APS_SCOPES"):
            data["scopes"] = parse_scopes(env["APS_SCOPES"])

        try:
            config = cls(**data)
        except ValidationError as e:
            errors = e.errors()
            fields = [".".join(str(p) for p in err["loc"]) for err in errors]
            messages = [err["msg"] for err in errors]
            logger.error("Invalid OAuth configuration: %s", "; ".join(messages))
            raise ConfigurationError(
                "Invalid OAuth configuration",
                details={"fields": fields, "errors": messages},
            ) from e

        logger.debug(
            "Loaded OAuth config for client %s... (callback port %d)",
            config.client_id[:6],
            config.callback_port,
        )
        return config


__all__ = [
    "APS_AUTHORIZE_URL",
    "APS_TOKEN_URL",
    "DEFAULT_SCOPES",
    "DEFAULT_CALLBACK_PORT",
    "DEFAULT_FLOW_TIMEOUT",
    "DEFAULT_REQUEST_TIMEOUT",
    "OAuthConfig",
    "default_redirect_uri",
    "parse_scopes",
    "redirect_port",
]
