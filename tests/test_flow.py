"""Tests for sign-in flow construction."""

from urllib.parse import parse_qs, urlparse

import pytest

from piano_id.errors import PianoIdDecodeError, PianoIdHttpError
from piano_id.flow import (
    AUTH_PATH,
    SIGN_IN_TARGET,
    WIDGET_LOGIN,
    WIDGET_REGISTER,
    LaunchRequest,
    build_sign_in_launch_request,
    build_sign_in_url,
    parse_redirect_uri,
)
from piano_id.social import StaticOAuthProvider
from piano_id.tokens import Token


def query_of(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


class TestBuildSignInUrl:
    """Tests for build_sign_in_url function."""

    def test_builds_url_with_required_params(self) -> None:
        """Test that URL contains all fixed parameters."""
        url = build_sign_in_url("https://id.example.com", "test_aid")

        assert url.startswith(f"https://id.example.com/{AUTH_PATH}?")
        query = query_of(url)
        assert query["response_type"] == ["token"]
        assert query["client_id"] == ["test_aid"]
        assert query["force_redirect"] == ["1"]
        assert query["disable_sign_up"] == ["false"]

    def test_disable_sign_up_literal(self) -> None:
        """Test that the flag is rendered as a lower-case literal."""
        url = build_sign_in_url("https://id.example.com", "aid", disable_sign_up=True)
        assert "disable_sign_up=true" in url

    def test_widget_included_when_set(self) -> None:
        """Test that the screen parameter carries the widget."""
        url = build_sign_in_url("https://id.example.com", "aid", widget=WIDGET_REGISTER)
        assert query_of(url)["screen"] == ["register"]

    def test_empty_widget_omitted(self) -> None:
        """Test that an empty or missing widget adds no screen parameter."""
        assert "screen=" not in build_sign_in_url("https://id.example.com", "aid", widget="")
        assert "screen=" not in build_sign_in_url("https://id.example.com", "aid", widget=None)

    def test_no_providers_omits_param(self) -> None:
        """Test that oauth_providers is absent without providers."""
        assert "oauth_providers" not in build_sign_in_url("https://id.example.com", "aid")

    def test_providers_comma_joined(self) -> None:
        """Test that providers are comma joined without encoding the comma."""
        url = build_sign_in_url("https://id.example.com", "aid", oauth_providers=["a", "b"])
        assert "oauth_providers=a,b" in url

    def test_trailing_slash_on_endpoint(self) -> None:
        """Test that a trailing slash does not produce a double slash."""
        url = build_sign_in_url("https://id.example.com/", "aid")
        assert f"https://id.example.com/{AUTH_PATH}?" in url


class TestLaunchRequest:
    """Tests for LaunchRequest and the sign-in launch request."""

    def test_merged_overrides(self) -> None:
        """Test that merged parameters win over existing ones."""
        request = LaunchRequest("t", {"a": "1", "b": "2"})
        merged = request.merged({"b": "3"})
        assert merged.params == {"a": "1", "b": "3"}
        assert request.params == {"a": "1", "b": "2"}

    def test_sign_in_launch_request(self) -> None:
        """Test the sign-in launch request parameters."""
        host_context = object()
        request = build_sign_in_launch_request(host_context, True, WIDGET_LOGIN)
        assert request.target == SIGN_IN_TARGET
        assert request.params == {"disable_sign_up": "true", "widget": "login"}
        assert request.context is host_context

    def test_sign_in_launch_request_without_widget(self) -> None:
        """Test that no widget parameter is set by default."""
        request = build_sign_in_launch_request()
        assert request.params == {"disable_sign_up": "false"}


class TestParseRedirectUri:
    """Tests for parse_redirect_uri function."""

    def test_success_redirect(self, access_token) -> None:
        """Test that a success redirect yields a token with JWT expiry."""
        uri = f"piano.id.oauth.aid://success?access_token={access_token}&refresh_token=refresh"
        token = parse_redirect_uri(uri)
        assert token is not None
        assert token.access_token == access_token
        assert token.refresh_token == "refresh"
        assert token.expires_in_timestamp == 1893456000

    def test_authority_case_insensitive(self) -> None:
        """Test that the success authority matches regardless of case."""
        token = parse_redirect_uri("app://SUCCESS?access_token=a&refresh_token=r")
        assert token is not None

    def test_other_authority_ignored(self) -> None:
        """Test that unrelated URIs are not handled."""
        assert parse_redirect_uri("app://cancel?access_token=a&refresh_token=r") is None
        assert parse_redirect_uri(None) is None
        assert parse_redirect_uri("") is None

    def test_missing_access_token(self) -> None:
        """Test that a missing access token is a hard failure."""
        with pytest.raises(PianoIdDecodeError, match="accessToken"):
            parse_redirect_uri("app://success?refresh_token=r")

    def test_missing_refresh_token(self) -> None:
        """Test that a missing refresh token is a hard failure."""
        with pytest.raises(PianoIdDecodeError, match="refreshToken"):
            parse_redirect_uri("app://success?access_token=a")

    def test_empty_values_are_present(self) -> None:
        """Test that an empty but present parameter is accepted."""
        token = parse_redirect_uri("app://success?access_token=&refresh_token=r")
        assert token == Token("", "r", 0)


class TestSignInContext:
    """Tests for the fluent SignInContext."""

    def test_builder_state(self, client) -> None:
        """Test that builder calls chain and record state."""
        context = client.sign_in().disable_sign_up().widget(WIDGET_LOGIN)
        assert context.sign_up_disabled is True
        assert context.screen == WIDGET_LOGIN

    def test_launch_request(self, client) -> None:
        """Test the launch request built from the context."""
        request = client.sign_in().widget(WIDGET_REGISTER).get_launch_request()
        assert request.params == {"disable_sign_up": "false", "widget": "register"}

    @pytest.mark.asyncio
    async def test_get_url_resolves_endpoint(self, client, mock_http, host_response) -> None:
        """Test that the URL is built on the resolved host with providers."""
        mock_http.post.return_value = host_response
        client.with_provider(StaticOAuthProvider("Google"))
        client.with_provider(StaticOAuthProvider("Facebook"))

        url = await client.sign_in().disable_sign_up().get_url()

        assert url.startswith(f"https://id.example.com/{AUTH_PATH}?")
        assert "disable_sign_up=true" in url
        assert "oauth_providers=google,facebook" in url

    @pytest.mark.asyncio
    async def test_get_url_propagates_resolver_failure(self, client, mock_http, make_response) -> None:
        """Test that resolver errors reach the caller unchanged."""
        mock_http.post.return_value = make_response(404)
        with pytest.raises(PianoIdHttpError) as exc_info:
            await client.sign_in().get_url()
        assert exc_info.value.status_code == 404
