"""Social login bridging.

The hosted sign-in page asks the app to run a native social login (Google,
Facebook, ...) by posting a JSON payload. The app looks up the matching
OAuthProvider, launches it, and hands the provider's token back to the page
through a JavaScript callback command.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import OAuthProviderNotRegisteredError, PianoIdDecodeError
from .flow import LaunchRequest

logger = logging.getLogger(__name__)

KEY_CLIENT_ID = "client_id"

SOCIAL_LOGIN_CALLBACK_TEMPLATE = "(function(){{window.PianoIDMobileSDK.socialLoginCallback('{}')}})()"


class OAuthProvider(ABC):
    """Social login provider plug-in."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name as used by the hosted sign-in page (case-insensitive)."""

    @abstractmethod
    def build_launch_request(self, context: Any, params: dict[str, str]) -> LaunchRequest:
        """Build the launch request that starts this provider's login.

        Args:
            context: Opaque host object from the caller
            params: Shared parameters (at least KEY_CLIENT_ID)
        """


class StaticOAuthProvider(OAuthProvider):
    """Provider whose launch request only carries the shared parameters."""

    def __init__(self, name: str, target: str | None = None):
        self._name = name
        self.target = target or f"oauth:{name.lower()}"

    @property
    def name(self) -> str:
        return self._name

    def build_launch_request(self, context: Any, params: dict[str, str]) -> LaunchRequest:
        return LaunchRequest(self.target, dict(params), context)


@dataclass(frozen=True)
class SocialTokenResponse:
    """Social login request posted by the hosted sign-in page."""

    oauth_provider: str
    client_id: str
    token: str | None = None

    def to_params(self) -> dict[str, str]:
        """Parameters shared by every provider's launch request."""
        return {KEY_CLIENT_ID: self.client_id}

    @classmethod
    def from_json(cls, payload: str) -> "SocialTokenResponse":
        """Parse the page's JSON payload; unknown keys are ignored.

        Raises:
            PianoIdDecodeError: If the payload is not a JSON object with
                string ``oauthProvider`` and ``clientId`` fields
        """
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise PianoIdDecodeError(f"Invalid payload '{payload}'") from e

        if not isinstance(data, dict):
            raise PianoIdDecodeError(f"Invalid payload '{payload}'")

        oauth_provider = data.get("oauthProvider")
        client_id = data.get("clientId")
        if not isinstance(oauth_provider, str) or not isinstance(client_id, str):
            raise PianoIdDecodeError(f"Invalid payload '{payload}'")

        token = data.get("token")
        return cls(
            oauth_provider=oauth_provider,
            client_id=client_id,
            token=token if isinstance(token, str) else None,
        )


def build_social_auth_request(
    payload: str,
    providers: Mapping[str, OAuthProvider],
    context: Any = None,
) -> LaunchRequest:
    """Turn a social login payload into the provider's launch request.

    Args:
        payload: JSON payload from the hosted sign-in page
        providers: Registered providers keyed by lower-cased name
        context: Opaque host object passed through to the provider

    Returns:
        The provider's launch request merged with the shared parameters

    Raises:
        PianoIdDecodeError: If the payload is malformed
        OAuthProviderNotRegisteredError: If no provider matches
    """
    response = SocialTokenResponse.from_json(payload)

    provider = providers.get(response.oauth_provider.lower())
    if provider is None:
        logger.warning(f"Social login requested for unregistered provider {response.oauth_provider}")
        raise OAuthProviderNotRegisteredError(response.oauth_provider)

    params = response.to_params()
    return provider.build_launch_request(context, params).merged(params)


def build_result_js_command(provider: str, token: str, aid: str) -> str:
    """Build the JavaScript command that hands a social token to the page.

    The JSON object is embedded in a single-quoted JS string literal.
    Backslashes are doubled and single quotes written as \\u0027, so the
    string the page receives after JS unescaping is the JSON text itself.
    """
    social_token_data = (
        json.dumps(
            {"provider": provider.upper(), "token": token, "clientId": aid},
            separators=(",", ":"),
        )
        .replace("\\", "\\\\")
        .replace("'", "\\u0027")
    )
    return SOCIAL_LOGIN_CALLBACK_TEMPLATE.format(social_token_data)
