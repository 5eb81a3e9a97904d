"""CLI entry point for the Piano ID client."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, TypeVar

import click
import httpx

from . import __version__
from .client import PianoIdClient
from .config import Config, load_config
from .errors import PianoIdError, PianoIdHttpError
from .flow import WIDGET_LOGIN, WIDGET_REGISTER, parse_redirect_uri
from .output import OutputHandler, format_token
from .social import StaticOAuthProvider
from .tokens import Token, parse_jwt_claims

# Logger for CLI
logger = logging.getLogger("pianoid")

T = TypeVar("T")


@click.group()
@click.option("--aid", help="Application ID (default: $PIANO_ID_AID)")
@click.option("--endpoint", help="API endpoint URL or production/sandbox/australia/asia-pacific")
@click.option("--env-file", "env_path", type=click.Path(exists=True), help="Path to .env file")
@click.option("--json", "json_mode", is_flag=True, help="Output in JSON format")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    aid: str | None,
    endpoint: str | None,
    env_path: str | None,
    json_mode: bool,
    verbose: bool,
) -> None:
    """Piano ID - sign-in URLs, token refresh and sign out from the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["aid"] = aid
    ctx.obj["endpoint"] = endpoint
    ctx.obj["env_path"] = Path(env_path) if env_path else None
    ctx.obj["output"] = OutputHandler(json_mode)

    # Configure logging based on verbosity
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING)


def get_config(ctx: click.Context) -> Config | NoReturn:
    """Get config from context, handling errors."""
    output: OutputHandler = ctx.obj["output"]
    try:
        return load_config(ctx.obj["aid"], ctx.obj["endpoint"], ctx.obj["env_path"])
    except ValueError as e:
        output.error(e, error_type="ConfigError", help_text=None)
        raise SystemExit(1)  # Never reached due to sys.exit in output.error


def run_with_client(
    ctx: click.Context,
    operation: Callable[[PianoIdClient], Awaitable[T]],
    providers: tuple[str, ...] = (),
) -> T | NoReturn:
    """Run an async operation against a freshly configured client."""
    config = get_config(ctx)
    output: OutputHandler = ctx.obj["output"]

    async def runner() -> T:
        logger.debug(f"Using {config.endpoint} for {config.aid} (timeout {config.timeout}s)")
        async with httpx.AsyncClient(timeout=config.timeout) as http:
            client = PianoIdClient(config.aid, config.endpoint, http_client=http)
            for name in providers:
                client.with_provider(StaticOAuthProvider(name))
            return await operation(client)

    try:
        return asyncio.run(runner())
    except PianoIdHttpError as e:
        output.error(e, help_text=f"The server rejected the request (HTTP {e.status_code}).")
        raise SystemExit(1)
    except PianoIdError as e:
        output.error(e)
        raise SystemExit(1)


@main.command("sign-in-url")
@click.option("--disable-sign-up", is_flag=True, help="Hide the registration screen")
@click.option("--widget", "-w", type=click.Choice([WIDGET_LOGIN, WIDGET_REGISTER]), help="Screen to open")
@click.option("--provider", "-p", "providers", multiple=True, help="Social provider to offer (repeatable)")
@click.pass_context
def sign_in_url(ctx: click.Context, disable_sign_up: bool, widget: str | None, providers: tuple[str, ...]) -> None:
    """Print the browser sign-in URL."""
    output: OutputHandler = ctx.obj["output"]
    url = run_with_client(
        ctx,
        lambda client: client.sign_in_url(disable_sign_up, widget),
        providers,
    )
    output.success({"url": url}, human_message=url)


@main.command()
@click.argument("refresh_token")
@click.pass_context
def refresh(ctx: click.Context, refresh_token: str) -> None:
    """Exchange REFRESH_TOKEN for a new token pair."""
    output: OutputHandler = ctx.obj["output"]
    token = run_with_client(ctx, lambda client: client.refresh_token(refresh_token))
    output.success(format_token(token))


@main.command("sign-out")
@click.argument("access_token")
@click.pass_context
def sign_out(ctx: click.Context, access_token: str) -> None:
    """End the session of ACCESS_TOKEN on the server."""
    output: OutputHandler = ctx.obj["output"]
    run_with_client(ctx, lambda client: client.sign_out(access_token))
    output.success({"signed_out": True}, human_message="Signed out.")


@main.command()
@click.argument("access_token")
@click.pass_context
def decode(ctx: click.Context, access_token: str) -> None:
    """Show the expiry of ACCESS_TOKEN (offline, signature not verified)."""
    output: OutputHandler = ctx.obj["output"]
    claims = parse_jwt_claims(access_token)
    if claims is None:
        output.error(
            ValueError("Token claims could not be decoded"),
            error_type="DecodeError",
            help_text="Expected a compact JWT (header.claims.signature).",
        )
        return

    token = Token(access_token, "", claims.exp or 0)
    expires_at = token.expires_at
    data: dict[str, Any] = {
        "exp": claims.exp,
        "expiresAt": expires_at.isoformat() if expires_at else None,
        "expired": token.is_expired(buffer_seconds=0),
    }
    output.success(data)


@main.command("parse-redirect")
@click.argument("uri")
@click.pass_context
def parse_redirect(ctx: click.Context, uri: str) -> None:
    """Extract the token from a sign-in redirect URI."""
    output: OutputHandler = ctx.obj["output"]
    try:
        token = parse_redirect_uri(uri)
    except PianoIdError as e:
        output.error(e)
        return

    if token is None:
        output.error(
            ValueError(f"Not a sign-in redirect: {uri}"),
            help_text="Expected a URI like scheme://success?access_token=...&refresh_token=...",
        )
        return
    output.success(format_token(token))


@main.command("social-callback")
@click.argument("provider")
@click.argument("token")
@click.pass_context
def social_callback(ctx: click.Context, provider: str, token: str) -> None:
    """Print the JavaScript command that returns a social TOKEN to the page."""
    output: OutputHandler = ctx.obj["output"]
    config = get_config(ctx)
    command = PianoIdClient(config.aid, config.endpoint).build_result_js_command(provider, token)
    output.success({"command": command}, human_message=command)
