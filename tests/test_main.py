"""Tests for the command-line entry point."""

from __future__ import annotations

import logging

import pytest

from aps_oauth import __main__ as cli
from aps_oauth.utils.errors import OAuthCallbackError


@pytest.fixture(autouse=True)
def no_dotenv(mocker):
    """Keep a developer's .env file out of the tests."""
    return mocker.patch("aps_oauth.__main__.load_dotenv")


@pytest.fixture
def configured_env(monkeypatch):
    monkeypatch.setenv("APS_CLIENT_ID", "env-id")
    monkeypatch.setenv("APS_CLIENT_SECRET", "env-secret")


class TestMain:
    """Tests for main()."""

    def test_missing_configuration_exits_1(self, monkeypatch):
        """Test missing credentials exit with status 1."""
        monkeypatch.delenv("APS_CLIENT_ID", raising=False)
        monkeypatch.delenv("APS_CLIENT_SECRET", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1

    def test_prints_access_token(self, mocker, configured_env, capsys, make_tokens):
        """Test a successful run prints only the access token to stdout."""
        mocker.patch(
            "aps_oauth.auth.manager.AuthManager.authenticate",
            return_value=make_tokens(access_token="printed-token"),
        )

        cli.main()

        assert capsys.readouterr().out == "printed-token\n"

    def test_authentication_failure_exits_1(self, mocker, configured_env, capsys):
        """Test an authentication failure exits with status 1 and no token."""
        mocker.patch(
            "aps_oauth.auth.manager.AuthManager.authenticate",
            side_effect=OAuthCallbackError("access_denied"),
        )

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert capsys.readouterr().out == ""

    def test_loads_dotenv(self, mocker, no_dotenv, configured_env, make_tokens):
        """Test .env loading happens before configuration."""
        mocker.patch(
            "aps_oauth.auth.manager.AuthManager.authenticate",
            return_value=make_tokens(),
        )

        cli.main()

        no_dotenv.assert_called_once_with()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_quiets_urllib3(self, monkeypatch):
        """Test HTTP library noise is limited to warnings."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        cli.configure_logging()

        assert logging.getLogger("urllib3").level == logging.WARNING
