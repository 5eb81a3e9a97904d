"""Piano ID token data structures and utilities.

This module provides the Token dataclass, its JSON codec, and the JWT
claims decoder used to find a token's expiry when the server does not
send one explicitly.
"""

import base64
import binascii
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .errors import PianoIdDecodeError

logger = logging.getLogger(__name__)

# Accepted field names, in priority order (snake_case before camelCase)
ACCESS_TOKEN_KEYS = ("access_token", "accessToken")
REFRESH_TOKEN_KEYS = ("refresh_token", "refreshToken")
EXPIRES_IN_KEYS = ("expires_in", "expiresIn")


@dataclass(frozen=True)
class TokenClaims:
    """The subset of JWT claims this SDK reads."""

    exp: int | None = None


def _as_int(value: Any) -> int | None:
    """Coerce a JSON number (or numeric string) to int, None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # json accepts NaN and Infinity
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def parse_jwt_claims(token: str) -> TokenClaims | None:
    """Decode the claims segment of a compact JWT.

    Only the middle segment is read; the signature is not verified. Padding
    on the base64url segment is optional.

    Args:
        token: Compact token string (header.claims.signature)

    Returns:
        TokenClaims, or None if the token has no claims segment or the
        segment is not valid base64url-encoded JSON
    """
    segments = token.split(".")
    if len(segments) < 2 or not segments[1]:
        return None

    segment = segments[1]
    segment += "=" * (-len(segment) % 4)

    try:
        raw = base64.urlsafe_b64decode(segment.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.debug(f"Could not decode JWT claims: {e}")
        return None

    if not isinstance(data, dict):
        return None

    return TokenClaims(exp=_as_int(data.get("exp")))


def decode_expiry(token: str) -> int | None:
    """Get the ``exp`` claim of a compact JWT, None if absent or undecodable."""
    claims = parse_jwt_claims(token)
    return claims.exp if claims else None


def _first_present(data: dict[str, Any], keys: tuple[str, ...]) -> tuple[str, Any] | None:
    for key in keys:
        if key in data:
            return key, data[key]
    return None


def _require_string(data: dict[str, Any], keys: tuple[str, ...]) -> str:
    found = _first_present(data, keys)
    if found is None:
        raise PianoIdDecodeError(f"Required value '{keys[1]}' (JSON name '{keys[0]}') missing")
    key, value = found
    if not isinstance(value, str):
        raise PianoIdDecodeError(f"Non-null string value '{keys[1]}' expected at '{key}'")
    return value


@dataclass(frozen=True)
class Token:
    """Piano ID token pair.

    Attributes:
        access_token: The access token (a compact JWT)
        refresh_token: Token used to obtain a new pair
        expires_in_timestamp: Expiry as epoch seconds; 0 when unknown
    """

    access_token: str
    refresh_token: str
    expires_in_timestamp: int = 0

    @property
    def expires_at(self) -> datetime | None:
        """Expiry as a UTC datetime, None when unknown or out of range."""
        if not self.expires_in_timestamp:
            return None
        try:
            return datetime.fromtimestamp(self.expires_in_timestamp, tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            # Outside the range datetime can represent
            return None

    def is_expired(self, buffer_seconds: int = 30) -> bool:
        """Check if the access token is expired or nearly expired.

        Args:
            buffer_seconds: Consider the token expired this many seconds
                before actual expiry to allow for clock skew.

        Returns:
            True if the token expires within buffer_seconds. Tokens with
            unknown or unrepresentable expiry are never considered expired.
        """
        expires_at = self.expires_at
        if expires_at is None:
            return False
        now = datetime.now(timezone.utc)
        return now + timedelta(seconds=buffer_seconds) >= expires_at

    def get_auth_header(self) -> str:
        """Get the Authorization header value for this token."""
        return f"Bearer {self.access_token}"

    @classmethod
    def build(cls, access_token: str, refresh_token: str) -> "Token":
        """Create a token, taking the expiry from the access token's claims."""
        return cls(access_token, refresh_token, decode_expiry(access_token) or 0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary with camelCase keys."""
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in_timestamp,
        }

    def to_json(self) -> str:
        """Serialize to a JSON string with camelCase keys."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Token":
        """Deserialize from a token endpoint response or stored payload.

        Both snake_case and camelCase keys are accepted; when both forms are
        present the snake_case one wins. An explicit expiry overrides the
        one in the access token's claims.

        Raises:
            PianoIdDecodeError: If either token is missing or not a string
        """
        if not isinstance(data, dict):
            raise PianoIdDecodeError(f"Expected a JSON object, got {type(data).__name__}")

        access_token = _require_string(data, ACCESS_TOKEN_KEYS)
        refresh_token = _require_string(data, REFRESH_TOKEN_KEYS)

        expires_in: int | None = None
        found = _first_present(data, EXPIRES_IN_KEYS)
        if found is not None:
            key, value = found
            expires_in = _as_int(value)
            if expires_in is None:
                raise PianoIdDecodeError(f"Non-null integer value 'expiresIn' expected at '{key}'")

        if expires_in is None:
            expires_in = decode_expiry(access_token) or 0

        return cls(access_token, refresh_token, expires_in)

    @classmethod
    def from_json(cls, payload: str) -> "Token":
        """Deserialize from a JSON string (see from_dict)."""
        try:
            data = json.loads(payload)
        except ValueError as e:
            # Payload may hold tokens, keep it out of the message
            raise PianoIdDecodeError("Invalid token payload: not valid JSON") from e
        return cls.from_dict(data)
