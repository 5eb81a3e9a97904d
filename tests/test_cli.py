"""Tests for CLI module."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from piano_id.cli import main
from piano_id.errors import PianoIdHttpError
from piano_id.tokens import Token

TEST_HOST = "https://id.example.com"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def isolated_env(clean_env, monkeypatch, tmp_path: Path) -> None:
    """Run without Piano ID variables or .env files."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("piano_id.config.ENV_SEARCH_PATHS", [tmp_path / "missing.env"])


@pytest.fixture
def resolved_host():
    """Patch the deployment host lookup."""
    with patch("piano_id.endpoint.fetch_deployment_host", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = TEST_HOST
        yield mock_fetch


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_version(self, runner: CliRunner):
        """Test --version flag."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "version" in result.output.lower()

    def test_help(self, runner: CliRunner):
        """Test --help flag."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Piano ID" in result.output
        assert "sign-in-url" in result.output
        assert "refresh" in result.output
        assert "decode" in result.output


class TestSignInUrlCommand:
    """Tests for the sign-in-url command."""

    def test_prints_url(self, runner: CliRunner, isolated_env, resolved_host):
        """Test that the URL is printed as is in human mode."""
        result = runner.invoke(
            main,
            [
                "--aid", "cli_aid", "--endpoint", "sandbox",
                "sign-in-url", "-w", "register", "-p", "Google", "-p", "apple",
            ],
        )

        assert result.exit_code == 0
        url = result.output.strip()
        assert url.startswith(f"{TEST_HOST}/id/api/v1/identity/vxauth/authorize?")
        assert "client_id=cli_aid" in url
        assert "screen=register" in url
        assert "oauth_providers=google,apple" in url
        assert resolved_host.await_args.args[:2] == ("https://sandbox.piano.io", "cli_aid")

    def test_json_mode(self, runner: CliRunner, isolated_env, resolved_host):
        """Test JSON output."""
        result = runner.invoke(main, ["--json", "--aid", "cli_aid", "sign-in-url", "--disable-sign-up"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert "disable_sign_up=true" in data["data"]["url"]

    def test_missing_aid(self, runner: CliRunner, isolated_env):
        """Test that a missing application ID exits with an error."""
        result = runner.invoke(main, ["--json", "sign-in-url"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["error"]["type"] == "ConfigError"

    def test_lookup_http_error(self, runner: CliRunner, isolated_env, resolved_host):
        """Test that HTTP errors report the status code."""
        resolved_host.side_effect = PianoIdHttpError(503, "Deployment host lookup")

        result = runner.invoke(main, ["--json", "--aid", "cli_aid", "sign-in-url"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"]["type"] == "PianoIdHttpError"
        assert data["error"]["status_code"] == 503


class TestRefreshCommand:
    """Tests for the refresh command."""

    def test_refresh(self, runner: CliRunner, isolated_env, resolved_host):
        """Test that the new token is printed."""
        with patch("piano_id.exchange.refresh_token", new_callable=AsyncMock) as mock_refresh:
            mock_refresh.return_value = Token("new_access", "new_refresh", 0)
            result = runner.invoke(main, ["--json", "--aid", "cli_aid", "refresh", "old_refresh"])

        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["accessToken"] == "new_access"
        assert data["refreshToken"] == "new_refresh"
        assert data["expiresAt"] is None
        assert mock_refresh.await_args.args[:3] == (TEST_HOST, "cli_aid", "old_refresh")


class TestSignOutCommand:
    """Tests for the sign-out command."""

    def test_sign_out(self, runner: CliRunner, isolated_env, resolved_host):
        """Test the human confirmation message."""
        with patch("piano_id.exchange.sign_out", new_callable=AsyncMock) as mock_sign_out:
            result = runner.invoke(main, ["--aid", "cli_aid", "sign-out", "access"])

        assert result.exit_code == 0
        assert "Signed out." in result.output
        mock_sign_out.assert_awaited_once()


class TestDecodeCommand:
    """Tests for the decode command."""

    def test_decode(self, runner: CliRunner, access_token: str):
        """Test decoding works offline without an application ID."""
        result = runner.invoke(main, ["--json", "decode", access_token])

        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["exp"] == 1893456000
        assert data["expiresAt"] == "2030-01-01T00:00:00+00:00"

    def test_decode_invalid(self, runner: CliRunner):
        """Test that a non-JWT value is rejected."""
        result = runner.invoke(main, ["--json", "decode", "not-a-jwt"])

        assert result.exit_code == 1
        assert json.loads(result.output)["error"]["type"] == "DecodeError"


class TestParseRedirectCommand:
    """Tests for the parse-redirect command."""

    def test_parse(self, runner: CliRunner, access_token: str):
        """Test extracting the token from a success redirect."""
        uri = f"piano.id.oauth.aid://success?access_token={access_token}&refresh_token=r"
        result = runner.invoke(main, ["--json", "parse-redirect", uri])

        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["refreshToken"] == "r"
        assert data["expiresIn"] == 1893456000

    def test_missing_refresh_token(self, runner: CliRunner):
        """Test that a success redirect without refresh token fails."""
        result = runner.invoke(main, ["--json", "parse-redirect", "app://success?access_token=a"])

        assert result.exit_code == 1
        assert "refreshToken must be filled" in json.loads(result.output)["error"]["message"]

    def test_not_a_redirect(self, runner: CliRunner):
        """Test that unrelated URIs are rejected."""
        result = runner.invoke(main, ["--json", "parse-redirect", "app://elsewhere"])
        assert result.exit_code == 1


class TestSocialCallbackCommand:
    """Tests for the social-callback command."""

    def test_prints_command(self, runner: CliRunner, isolated_env):
        """Test the JavaScript command output."""
        result = runner.invoke(main, ["--aid", "cli_aid", "social-callback", "google", "tok"])

        assert result.exit_code == 0
        assert result.output.strip() == (
            "(function(){window.PianoIDMobileSDK.socialLoginCallback("
            '\'{"provider":"GOOGLE","token":"tok","clientId":"cli_aid"}\')})()'
        )
