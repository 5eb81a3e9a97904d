"""Config loading for the Piano ID client."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .endpoint import (
    DEFAULT_TIMEOUT,
    ENDPOINT_PRODUCTION,
    ENDPOINT_PRODUCTION_ASIA_PACIFIC,
    ENDPOINT_PRODUCTION_AUSTRALIA,
    ENDPOINT_SANDBOX,
)

ENV_AID = "PIANO_ID_AID"
ENV_ENDPOINT = "PIANO_ID_ENDPOINT"
ENV_TIMEOUT = "PIANO_ID_TIMEOUT"

# Short names accepted wherever an endpoint URL is expected
ENDPOINT_ALIASES = {
    "production": ENDPOINT_PRODUCTION,
    "sandbox": ENDPOINT_SANDBOX,
    "australia": ENDPOINT_PRODUCTION_AUSTRALIA,
    "asia-pacific": ENDPOINT_PRODUCTION_ASIA_PACIFIC,
}

# Env file search paths in priority order
ENV_SEARCH_PATHS = [
    Path(".env"),
    Path.home() / ".config" / "piano-id" / ".env",
]


@dataclass
class Config:
    """Piano ID client configuration."""

    aid: str
    endpoint: str = ENDPOINT_PRODUCTION
    timeout: float = DEFAULT_TIMEOUT
    env_path: Path | None = None


def resolve_endpoint(value: str) -> str:
    """Expand an endpoint alias; URLs are returned unchanged."""
    return ENDPOINT_ALIASES.get(value.strip().lower(), value.strip())


def find_env_file(explicit_path: Path | None = None) -> Path | None:
    """Find the .env file, checking project then user level."""
    if explicit_path:
        if explicit_path.exists():
            return explicit_path
        return None

    for path in ENV_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def load_config(
    aid: str | None = None,
    endpoint: str | None = None,
    env_path: Path | None = None,
) -> Config:
    """Load configuration from arguments, environment and .env file.

    Explicit arguments win over environment variables. The .env file never
    overrides variables already set in the environment.

    Args:
        aid: Application ID (default: $PIANO_ID_AID)
        endpoint: API endpoint URL or alias (default: $PIANO_ID_ENDPOINT,
            then production)
        env_path: Explicit path to .env file (optional)

    Returns:
        Config object

    Raises:
        ValueError: If no application ID is configured or the timeout is
            not a number
    """
    env_file = find_env_file(env_path)
    if env_file:
        load_dotenv(env_file)

    aid = aid or os.environ.get(ENV_AID)
    if not aid:
        raise ValueError(
            f"No Piano ID application ID configured.\n\n"
            f"Pass --aid, or set {ENV_AID} in the environment or a .env file:\n\n"
            f"  {ENV_AID}=YOUR_AID\n"
            f"  {ENV_ENDPOINT}=sandbox"
        )

    endpoint = resolve_endpoint(endpoint or os.environ.get(ENV_ENDPOINT) or ENDPOINT_PRODUCTION)

    raw_timeout = os.environ.get(ENV_TIMEOUT)
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
    except ValueError as e:
        raise ValueError(f"{ENV_TIMEOUT} must be a number of seconds, got: {raw_timeout}") from e

    return Config(aid=aid, endpoint=endpoint, timeout=timeout, env_path=env_file)
