"""Token refresh and sign-out requests.

Both calls go to the deployment host resolved by EndpointResolver. Their
paths are absolute, so any path on the resolved host is replaced.
"""

import logging

import httpx

from .endpoint import DEFAULT_TIMEOUT
from .errors import PianoIdDecodeError, PianoIdError, PianoIdHttpError
from .tokens import Token

logger = logging.getLogger(__name__)

SIGN_OUT_PATH = "/id/api/v1/identity/logout"
SIGN_OUT_RESPONSE_TYPE = "code"
REFRESH_TOKEN_PATH = "/id/api/v1/identity/oauth/token"


def _origin(endpoint: str) -> str:
    """Scheme and authority of the endpoint, without path or query."""
    url = httpx.URL(endpoint)
    port = f":{url.port}" if url.port else ""
    return f"{url.scheme}://{url.host}{port}"


async def refresh_token(
    endpoint: str,
    aid: str,
    refresh_token_value: str,
    http_client: httpx.AsyncClient | None = None,
) -> Token:
    """Exchange a refresh token for a new token pair.

    Args:
        endpoint: Resolved deployment host
        aid: Application ID
        refresh_token_value: The refresh token
        http_client: Optional HTTP client

    Returns:
        The new Token

    Raises:
        PianoIdHttpError: If the server answers with a non-2xx status
        PianoIdDecodeError: If the response is not a valid token
        PianoIdError: On network errors
    """
    http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
    should_close = http_client is None

    try:
        response = await http.post(
            f"{_origin(endpoint)}{REFRESH_TOKEN_PATH}",
            json={"aid": aid, "refresh_token": refresh_token_value},
        )

        if not 200 <= response.status_code < 300:
            # Don't include the response body - it might contain tokens
            raise PianoIdHttpError(response.status_code, "Token refresh")

        try:
            data = response.json()
        except ValueError as e:
            raise PianoIdDecodeError("Token refresh response is not valid JSON") from e

        if data is None:
            raise PianoIdDecodeError("Token refresh response is empty")

        token = Token.from_dict(data)
        logger.debug("Token refreshed successfully")
        return token

    except httpx.RequestError as e:
        raise PianoIdError(f"Network error during token refresh: {e}", cause=e) from e
    finally:
        if should_close:
            await http.aclose()


async def sign_out(
    endpoint: str,
    aid: str,
    access_token: str,
    http_client: httpx.AsyncClient | None = None,
) -> None:
    """Sign the user out on the server.

    Args:
        endpoint: Resolved deployment host
        aid: Application ID
        access_token: Access token of the session to end
        http_client: Optional HTTP client

    Raises:
        PianoIdHttpError: If the server answers with a non-2xx status
        PianoIdError: On network errors
    """
    http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
    should_close = http_client is None

    try:
        response = await http.get(
            f"{_origin(endpoint)}{SIGN_OUT_PATH}",
            params={
                "response_type": SIGN_OUT_RESPONSE_TYPE,
                "client_id": aid,
                "token": access_token,
            },
        )

        if not 200 <= response.status_code < 300:
            raise PianoIdHttpError(response.status_code, "Sign out")

        logger.info(f"Signed out from {aid}")

    except httpx.RequestError as e:
        raise PianoIdError(f"Network error during sign out: {e}", cause=e) from e
    finally:
        if should_close:
            await http.aclose()
