"""Piano ID client SDK.

This package implements sign-in against the Piano ID hosted identity
service: sign-in URL construction, token parsing and refresh, sign out,
social login bridging, and typed Composer event dispatch.

Main Components:
    PianoIdClient: High-level client for one application (AID)
    Token: Access/refresh token pair with expiry
    EventDispatcher: Delivers Composer events to typed listeners

Quick Start:
    from piano_id import ENDPOINT_SANDBOX, WIDGET_LOGIN, init

    client = init("YOUR_AID", ENDPOINT_SANDBOX)
    url = await client.sign_in().widget(WIDGET_LOGIN).get_url()

    # After the service redirects back to the app
    token = client.parse_token(redirect_uri)
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("piano-id")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development

from .client import AuthResult, LaunchResult, PianoIdClient, get_client, init
from .endpoint import (
    ENDPOINT_PRODUCTION,
    ENDPOINT_PRODUCTION_ASIA_PACIFIC,
    ENDPOINT_PRODUCTION_AUSTRALIA,
    ENDPOINT_SANDBOX,
    EndpointResolver,
)
from .errors import (
    OAuthProviderNotRegisteredError,
    PianoIdDecodeError,
    PianoIdError,
    PianoIdHttpError,
)
from .events import (
    Event,
    EventData,
    ExperienceExecute,
    Meter,
    NonSite,
    ShowLogin,
    ShowTemplate,
    UserSegment,
    parse_event,
)
from .flow import WIDGET_LOGIN, WIDGET_REGISTER, LaunchRequest, SignInContext
from .listeners import (
    EventDispatcher,
    EventDispatchError,
    EventTypeListener,
    ExperienceExecuteListener,
    MeterListener,
    NonSiteListener,
    ShowLoginListener,
    ShowTemplateListener,
    UserSegmentListener,
)
from .registry import ExceptionRegistry
from .social import OAuthProvider, StaticOAuthProvider
from .tokens import Token, TokenClaims, decode_expiry, parse_jwt_claims

__all__ = [
    "__version__",
    # Client (main entry point)
    "PianoIdClient",
    "AuthResult",
    "LaunchResult",
    "init",
    "get_client",
    "SignInContext",
    "LaunchRequest",
    "WIDGET_LOGIN",
    "WIDGET_REGISTER",
    # Endpoints
    "EndpointResolver",
    "ENDPOINT_PRODUCTION",
    "ENDPOINT_PRODUCTION_AUSTRALIA",
    "ENDPOINT_PRODUCTION_ASIA_PACIFIC",
    "ENDPOINT_SANDBOX",
    # Tokens
    "Token",
    "TokenClaims",
    "parse_jwt_claims",
    "decode_expiry",
    # Errors
    "PianoIdError",
    "PianoIdHttpError",
    "PianoIdDecodeError",
    "OAuthProviderNotRegisteredError",
    "ExceptionRegistry",
    # Social login
    "OAuthProvider",
    "StaticOAuthProvider",
    # Events
    "Event",
    "EventData",
    "ExperienceExecute",
    "Meter",
    "NonSite",
    "UserSegment",
    "ShowTemplate",
    "ShowLogin",
    "parse_event",
    "EventDispatcher",
    "EventDispatchError",
    "EventTypeListener",
    "ExperienceExecuteListener",
    "MeterListener",
    "NonSiteListener",
    "UserSegmentListener",
    "ShowTemplateListener",
    "ShowLoginListener",
]
