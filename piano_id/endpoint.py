"""Deployment host lookup for Piano ID.

Each application (AID) is served by a deployment host that is not known in
advance. The host is looked up once per client and reused for every later
sign-in, refresh and sign-out request.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import PianoIdDecodeError, PianoIdError, PianoIdHttpError

logger = logging.getLogger(__name__)

# Relative to the API endpoint (e.g. https://buy.piano.io)
DEPLOYMENT_HOST_PATH = "api/v3/anon/mobile/sdk/id/deployment/host"

ENDPOINT_PRODUCTION = "https://buy.piano.io"
ENDPOINT_PRODUCTION_AUSTRALIA = "https://buy-au.piano.io"
ENDPOINT_PRODUCTION_ASIA_PACIFIC = "https://buy-ap.piano.io"
ENDPOINT_SANDBOX = "https://sandbox.piano.io"

DEFAULT_TIMEOUT = 30.0  # seconds


@dataclass
class HostResponse:
    """Deployment host lookup response.

    The API reports business errors in the body with a non-zero ``code``
    and a human-readable ``message``.
    """

    host: str | None = None
    code: int = 0
    message: str | None = None

    @property
    def has_error(self) -> bool:
        return self.code != 0 or not self.host

    @property
    def error(self) -> str:
        return self.message or "Deployment host lookup returned no host"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HostResponse":
        """Create from JSON response."""
        code = data.get("code", 0)
        return cls(
            host=data.get("host"),
            code=code if isinstance(code, int) else 0,
            message=data.get("message"),
        )


def _normalize_host(host: str) -> str:
    """Validate the host URL and strip any trailing slash.

    Raises:
        PianoIdDecodeError: If host is not an absolute http(s) URL
    """
    try:
        url = httpx.URL(host)
    except httpx.InvalidURL as e:
        raise PianoIdDecodeError(f"Invalid deployment host: {host}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise PianoIdDecodeError(f"Invalid deployment host: {host}")

    return str(url).rstrip("/")


async def fetch_deployment_host(
    api_endpoint: str,
    aid: str,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """Look up the deployment host for an application.

    Args:
        api_endpoint: Piano API endpoint, e.g. ENDPOINT_PRODUCTION
        aid: Application ID
        http_client: Optional HTTP client

    Returns:
        The deployment host URL without a trailing slash

    Raises:
        PianoIdError: If the lookup fails for any reason
    """
    url = f"{api_endpoint.rstrip('/')}/{DEPLOYMENT_HOST_PATH}"
    http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
    should_close = http_client is None

    try:
        logger.debug(f"Looking up deployment host for {aid} at {url}")
        response = await http.post(
            url,
            data={"aid": aid},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        if not 200 <= response.status_code < 300:
            raise PianoIdHttpError(response.status_code, "Deployment host lookup")

        try:
            data = response.json()
        except ValueError as e:
            raise PianoIdDecodeError("Deployment host response is not valid JSON") from e

        if not isinstance(data, dict):
            raise PianoIdDecodeError("Deployment host response is not a JSON object")

        host_response = HostResponse.from_dict(data)
        if host_response.has_error:
            raise PianoIdError(host_response.error)

        return _normalize_host(host_response.host)  # type: ignore[arg-type]

    except httpx.RequestError as e:
        raise PianoIdError(f"Network error during deployment host lookup: {e}", cause=e) from e
    finally:
        if should_close:
            await http.aclose()


class EndpointResolver:
    """Resolves and caches the deployment host for one application.

    The first successful lookup is kept for the lifetime of the resolver;
    there is no invalidation. A failed lookup caches nothing, so the next
    call tries again.

    Usage:
        resolver = EndpointResolver(ENDPOINT_PRODUCTION, aid)
        host = await resolver.resolve()
    """

    def __init__(
        self,
        api_endpoint: str,
        aid: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_endpoint = api_endpoint
        self.aid = aid
        self.http_client = http_client
        self._endpoint: str | None = None
        self._lock: asyncio.Lock | None = None

    @property
    def cached_endpoint(self) -> str | None:
        """The resolved host, None until the first successful lookup."""
        return self._endpoint

    async def resolve(self) -> str:
        """Get the deployment host, looking it up on first use.

        Raises:
            PianoIdError: If the lookup fails
        """
        if self._endpoint is not None:
            logger.debug(f"Using cached deployment host {self._endpoint}")
            return self._endpoint

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            # Another task may have resolved while we waited
            if self._endpoint is None:
                self._endpoint = await fetch_deployment_host(
                    self.api_endpoint, self.aid, self.http_client
                )
                logger.info(f"Resolved deployment host for {self.aid}: {self._endpoint}")
            return self._endpoint
