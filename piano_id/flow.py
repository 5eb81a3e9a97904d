"""Sign-in flow construction.

This module builds what the host application needs to start a sign-in:
1. The authorization URL opened in a browser or web view
2. A launch request describing the sign-in screen for host-controlled UI
3. Parsing of the redirect the service sends back on success
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable
from urllib.parse import parse_qs, urlencode, urlparse

from .errors import PianoIdDecodeError
from .tokens import Token

if TYPE_CHECKING:
    from .client import PianoIdClient

logger = logging.getLogger(__name__)

AUTH_PATH = "id/api/v1/identity/vxauth/authorize"

PARAM_RESPONSE_TYPE = "response_type"
PARAM_CLIENT_ID = "client_id"
PARAM_FORCE_REDIRECT = "force_redirect"
PARAM_DISABLE_SIGN_UP = "disable_sign_up"
PARAM_SCREEN = "screen"
PARAM_OAUTH_PROVIDERS = "oauth_providers"

VALUE_RESPONSE_TYPE_TOKEN = "token"
VALUE_FORCE_REDIRECT = "1"

# Redirect sent back by the service after a successful sign-in
LINK_AUTHORITY = "success"
PARAM_ACCESS_TOKEN = "access_token"
PARAM_REFRESH_TOKEN = "refresh_token"

# Screen selectors for the widget parameter
WIDGET_LOGIN = "login"
WIDGET_REGISTER = "register"

SIGN_IN_TARGET = "sign_in"
KEY_DISABLE_SIGN_UP = "disable_sign_up"
KEY_WIDGET = "widget"


@dataclass(frozen=True)
class LaunchRequest:
    """Host launch descriptor.

    Describes a UI flow the host application should start (sign-in screen,
    social provider SDK, ...). The SDK never interprets ``target``; it only
    carries parameters to whoever handles it.

    Attributes:
        target: What to launch
        params: String parameters for the launched flow
        context: Opaque host object passed through from the caller
    """

    target: str
    params: dict[str, str] = field(default_factory=dict)
    context: Any = None

    def merged(self, params: dict[str, str]) -> "LaunchRequest":
        """Return a copy with extra parameters; these win over existing ones."""
        return LaunchRequest(self.target, {**self.params, **params}, self.context)


def build_sign_in_url(
    endpoint: str,
    aid: str,
    disable_sign_up: bool = False,
    widget: str | None = None,
    oauth_providers: Iterable[str] = (),
) -> str:
    """Build the authorization URL for browser sign-in.

    Args:
        endpoint: Resolved deployment host
        aid: Application ID
        disable_sign_up: Hide the registration screen
        widget: Screen to open (WIDGET_LOGIN, WIDGET_REGISTER); skipped if empty
        oauth_providers: Registered social provider names, in order;
            skipped if empty

    Returns:
        Complete authorization URL
    """
    params: dict[str, str] = {
        PARAM_RESPONSE_TYPE: VALUE_RESPONSE_TYPE_TOKEN,
        PARAM_CLIENT_ID: aid,
        PARAM_FORCE_REDIRECT: VALUE_FORCE_REDIRECT,
        PARAM_DISABLE_SIGN_UP: "true" if disable_sign_up else "false",
    }

    if widget:
        params[PARAM_SCREEN] = widget

    providers = list(oauth_providers)
    if providers:
        params[PARAM_OAUTH_PROVIDERS] = ",".join(providers)

    return f"{endpoint.rstrip('/')}/{AUTH_PATH}?{urlencode(params, safe=',')}"


def build_sign_in_launch_request(
    context: Any = None,
    disable_sign_up: bool = False,
    widget: str | None = None,
) -> LaunchRequest:
    """Build the launch request for the hosted sign-in screen."""
    params = {KEY_DISABLE_SIGN_UP: "true" if disable_sign_up else "false"}
    if widget:
        params[KEY_WIDGET] = widget
    return LaunchRequest(SIGN_IN_TARGET, params, context)


def parse_redirect_uri(uri: str | None) -> Token | None:
    """Parse the redirect URI the service sends after sign-in.

    Args:
        uri: Redirect URI, e.g. ``piano.id.oauth.AID://success?access_token=...``

    Returns:
        Token if the URI is a success redirect, None for any other URI

    Raises:
        PianoIdDecodeError: If a success redirect lacks either token
    """
    if not uri:
        return None

    parsed = urlparse(uri)
    if parsed.netloc.lower() != LINK_AUTHORITY:
        logger.debug(f"Ignoring non-sign-in redirect to {parsed.scheme}://{parsed.netloc}")
        return None

    # Present but empty parameters count as filled
    params = parse_qs(parsed.query, keep_blank_values=True)

    def get_param(name: str) -> str | None:
        values = params.get(name, [])
        return values[0] if values else None

    access_token = get_param(PARAM_ACCESS_TOKEN)
    if access_token is None:
        raise PianoIdDecodeError("accessToken must be filled")

    refresh_token = get_param(PARAM_REFRESH_TOKEN)
    if refresh_token is None:
        raise PianoIdDecodeError("refreshToken must be filled")

    return Token.build(access_token, refresh_token)


class SignInContext:
    """Fluent builder for a single sign-in attempt.

    Usage:
        context = client.sign_in().disable_sign_up().widget(WIDGET_LOGIN)
        url = await context.get_url()
    """

    def __init__(self, client: "PianoIdClient"):
        self.client = client
        self.sign_up_disabled = False
        self.screen: str | None = None

    def disable_sign_up(self) -> "SignInContext":
        """Turn off the registration screen."""
        self.sign_up_disabled = True
        return self

    def widget(self, widget: str | None) -> "SignInContext":
        """Choose the screen to open (WIDGET_LOGIN, WIDGET_REGISTER or None)."""
        self.screen = widget
        return self

    def get_launch_request(self, context: Any = None) -> LaunchRequest:
        """Get the launch request for host-controlled sign-in UI."""
        return build_sign_in_launch_request(context, self.sign_up_disabled, self.screen)

    async def get_url(self) -> str:
        """Get the authorization URL, resolving the deployment host if needed."""
        return await self.client.sign_in_url(self.sign_up_disabled, self.screen)
