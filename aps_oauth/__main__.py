"""Entry point for the APS OAuth client."""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv


def configure_logging() -> None:
    """Configure logging to stderr.

    Keeps stdout free for the access token so the command can be used in
    shell substitutions.

    Respects LOG_LEVEL env var (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = logging.getLevelNamesMapping().get(log_level_str, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point.

    Loads environment, validates configuration, authenticates (opening the
    browser if needed) and prints the access token to stdout.
    """
    # Load .env file if present
    load_dotenv()

    # Configure logging first
    configure_logging()
    logger = logging.getLogger(__name__)

    from aps_oauth.auth.manager import AuthManager
    from aps_oauth.config import OAuthConfig
    from aps_oauth.utils.errors import AuthenticationError, ConfigurationError

    try:
        config = OAuthConfig.from_env()
    except ConfigurationError as e:
        logger.error("Configuration validation failed: %s", e)
        sys.exit(1)

    try:
        tokens = AuthManager(config).authenticate()
    except AuthenticationError as e:
        logger.error("Authentication failed: %s", e)
        sys.exit(1)

    logger.info("Authenticated; token expires in %d seconds", tokens.expires_in)
    print(tokens.access_token)


if __name__ == "__main__":
    main()
