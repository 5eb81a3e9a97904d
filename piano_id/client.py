"""High-level Piano ID client.

PianoIdClient is the main interface of the package. It owns the per-client
state (resolved deployment host, registered social providers, pending
errors, token callback) and delegates the actual work to the flow,
exchange and social modules.

Usage:
    client = PianoIdClient(aid, ENDPOINT_SANDBOX).with_provider(google)

    url = await client.sign_in().widget(WIDGET_LOGIN).get_url()
    # ... host navigates, service redirects back ...
    token = client.parse_token(redirect_uri)

    token = await client.refresh_token(token.refresh_token)
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from . import exchange
from .endpoint import ENDPOINT_PRODUCTION, EndpointResolver
from .errors import PianoIdError, to_piano_id_error
from .flow import LaunchRequest, SignInContext, build_sign_in_url, parse_redirect_uri
from .registry import ExceptionRegistry
from .social import OAuthProvider, build_result_js_command, build_social_auth_request
from .tokens import Token

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AuthResult:
    """Outcome of a sign-in, passed to the token callback.

    Attributes:
        token: The token on success
        error: The error on failure
    """

    token: Token | None = None
    error: PianoIdError | None = None

    def is_success(self) -> bool:
        """Check if sign-in produced a token."""
        return self.token is not None and self.error is None


@dataclass
class LaunchResult:
    """What the host hands back after a launched sign-in flow finishes.

    Attributes:
        error_code: Code from ExceptionRegistry, 0 when there is no error
        token: The token, if the flow produced one
    """

    error_code: int = 0
    token: Token | None = None


TokenCallback = Callable[[AuthResult], None]


async def _normalized(operation: Awaitable[T]) -> T:
    try:
        return await operation
    except PianoIdError:
        raise
    except Exception as e:
        raise to_piano_id_error(e) from e


class PianoIdClient:
    """Piano ID authorization client for one application (AID)."""

    def __init__(
        self,
        aid: str,
        endpoint: str = ENDPOINT_PRODUCTION,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            aid: Application ID
            endpoint: Piano API endpoint used for the deployment host lookup
            http_client: Optional HTTP client shared by all requests
        """
        self.aid = aid
        self.endpoint = endpoint
        self.http_client = http_client
        self.resolver = EndpointResolver(endpoint, aid, http_client)
        self.oauth_providers: dict[str, OAuthProvider] = {}
        self.token_callback: TokenCallback | None = None
        self._exceptions = ExceptionRegistry()

    def with_callback(self, callback: TokenCallback | None) -> "PianoIdClient":
        """Set the callback notified of sign-in results from parse_token."""
        self.token_callback = callback
        return self

    def with_provider(self, provider: OAuthProvider) -> "PianoIdClient":
        """Register a social login provider.

        Names are case-insensitive; registering a name again replaces the
        earlier provider.
        """
        self.oauth_providers[provider.name.lower()] = provider
        return self

    def sign_in(self) -> SignInContext:
        """Start building a sign-in."""
        return SignInContext(self)

    async def get_auth_endpoint(self) -> str:
        """Get the deployment host, looking it up on first use."""
        return await _normalized(self.resolver.resolve())

    async def sign_in_url(self, disable_sign_up: bool = False, widget: str | None = None) -> str:
        """Build the authorization URL for browser sign-in.

        Raises:
            PianoIdError: If the deployment host cannot be resolved
        """
        endpoint = await self.get_auth_endpoint()
        return build_sign_in_url(
            endpoint,
            self.aid,
            disable_sign_up,
            widget,
            self.oauth_providers.keys(),
        )

    async def refresh_token(self, refresh_token: str) -> Token:
        """Exchange a refresh token for a new token pair.

        Raises:
            PianoIdError: If resolution or the refresh request fails
        """
        endpoint = await self.get_auth_endpoint()
        return await _normalized(
            exchange.refresh_token(endpoint, self.aid, refresh_token, self.http_client)
        )

    async def sign_out(self, access_token: str) -> None:
        """Sign the user out on the server.

        Raises:
            PianoIdError: If resolution or the sign-out request fails
        """
        endpoint = await self.get_auth_endpoint()
        await _normalized(exchange.sign_out(endpoint, self.aid, access_token, self.http_client))

    def save_exception(self, error: PianoIdError) -> int:
        """Park an error for a host boundary that only carries int codes."""
        return self._exceptions.store(error)

    def get_stored_exception(self, code: int) -> PianoIdError | None:
        """Take back a parked error (read-once)."""
        return self._exceptions.take(code)

    def get_result(self, result: LaunchResult | None) -> Token | None:
        """Unpack the result of a launched sign-in flow.

        Raises:
            PianoIdError: The parked error when ``error_code`` is set, or a
                generic one if the code is unknown
        """
        if result is None:
            return None
        if result.error_code != 0:
            raise self._exceptions.take_or_default(result.error_code)
        return result.token

    def parse_token(self, uri: str | None) -> Token | None:
        """Parse a sign-in redirect and notify the token callback.

        Returns:
            Token for a success redirect, None for unrelated URIs

        Raises:
            PianoIdError: If a success redirect is malformed
        """
        try:
            token = parse_redirect_uri(uri)
        except Exception as e:
            error = to_piano_id_error(e)
            self._notify(AuthResult(error=error))
            raise error from e

        if token is not None:
            self._notify(AuthResult(token=token))
        return token

    def _notify(self, result: AuthResult) -> None:
        if self.token_callback is not None:
            self.token_callback(result)

    def build_token(self, access_token: str, refresh_token: str) -> Token:
        """Create a token, taking the expiry from the access token's claims."""
        return Token.build(access_token, refresh_token)

    def build_token_from_payload(self, payload: str) -> Token:
        """Create a token from a JSON payload sent by the hosted page."""
        return Token.from_json(payload)

    def build_social_auth_request(self, payload: str, context: Any = None) -> LaunchRequest:
        """Turn a social login payload into the provider's launch request.

        Raises:
            OAuthProviderNotRegisteredError: If no provider matches
            PianoIdDecodeError: If the payload is malformed
        """
        return build_social_auth_request(payload, self.oauth_providers, context)

    def build_result_js_command(self, provider: str, token: str) -> str:
        """Build the JavaScript command returning a social token to the page."""
        return build_result_js_command(provider, token, self.aid)


# Global client for convenient access (thread-safe)
_client: PianoIdClient | None = None
_client_lock = threading.Lock()


def init(
    aid: str,
    endpoint: str = ENDPOINT_PRODUCTION,
    http_client: httpx.AsyncClient | None = None,
) -> PianoIdClient:
    """Create the global client. Later calls return the existing one.

    Returns:
        The global PianoIdClient
    """
    global _client
    with _client_lock:
        if _client is None:
            _client = PianoIdClient(aid, endpoint, http_client)
        elif _client.aid != aid or _client.endpoint != endpoint:
            logger.warning(
                f"Piano ID already initialized for {_client.aid} at {_client.endpoint}, "
                f"ignoring {aid} at {endpoint}"
            )
    return _client


def get_client() -> PianoIdClient:
    """Get the global client.

    Raises:
        PianoIdError: If init() has not been called
    """
    if _client is None:
        raise PianoIdError("Piano ID SDK is not initialized! Make sure that you call init()")
    return _client
