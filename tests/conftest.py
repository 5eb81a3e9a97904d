"""Shared fixtures and utilities for Piano ID tests."""

import base64
import json
import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

import piano_id.client
from piano_id.client import PianoIdClient
from piano_id.social import StaticOAuthProvider

TEST_AID = "test_aid"
TEST_ENDPOINT = "https://sandbox.piano.io"
TEST_HOST = "https://id.example.com"


def encode_segment(data: Any) -> str:
    """Base64url-encode a JSON value without padding."""
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def make_jwt() -> Callable[[dict[str, Any]], str]:
    """Build unsigned compact JWTs with the given claims."""

    def _make(claims: dict[str, Any]) -> str:
        return f"{encode_segment({'alg': 'HS256', 'typ': 'JWT'})}.{encode_segment(claims)}.signature"

    return _make


@pytest.fixture
def access_token(make_jwt: Callable[[dict[str, Any]], str]) -> str:
    """An access token expiring at 1893456000 (2030-01-01)."""
    return make_jwt({"sub": "user-1", "exp": 1893456000})


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Build mock httpx responses."""

    def _make(status_code: int = 200, json_data: Any = None, json_error: Exception | None = None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        if json_error is not None:
            response.json.side_effect = json_error
        else:
            response.json.return_value = json_data
        return response

    return _make


@pytest.fixture
def mock_http() -> AsyncMock:
    """Create a mock httpx.AsyncClient."""
    http = AsyncMock()
    http.post = AsyncMock()
    http.get = AsyncMock()
    http.aclose = AsyncMock()
    return http


@pytest.fixture
def host_response(make_response: Callable[..., MagicMock]) -> MagicMock:
    """Successful deployment host lookup response."""
    return make_response(200, {"code": 0, "host": TEST_HOST})


@pytest.fixture
def client(mock_http: AsyncMock) -> PianoIdClient:
    """Client wired to the mock HTTP client."""
    return PianoIdClient(TEST_AID, TEST_ENDPOINT, http_client=mock_http)


@pytest.fixture
def resolved_client(client: PianoIdClient) -> PianoIdClient:
    """Client whose deployment host is already resolved."""
    client.resolver._endpoint = TEST_HOST
    return client


@pytest.fixture
def google_provider() -> StaticOAuthProvider:
    return StaticOAuthProvider("Google")


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_global_client() -> Generator[None, None, None]:
    """Forget the global client between tests."""
    piano_id.client._client = None
    yield
    piano_id.client._client = None


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Temporarily clear Piano ID environment variables."""
    old_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("PIANO_ID_"):
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(old_env)
