"""Output formatters for human-readable and JSON output."""

import json
import sys
from typing import Any

import click

from .tokens import Token


def format_json(data: Any, success: bool = True) -> str:
    """Format data as JSON output."""
    if success:
        output = {"success": True, "data": data}
    else:
        output = data  # Error dict already has success: false
    return json.dumps(output, indent=2, default=str)


def format_error_json(
    error: Exception,
    error_type: str | None = None,
    help_text: str | None = None,
) -> str:
    """Format an error as JSON with helpful information."""
    error_data: dict[str, Any] = {
        "type": error_type or type(error).__name__,
        "message": str(error),
        "help": help_text or "",
    }
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        error_data["status_code"] = status_code
    return json.dumps({"success": False, "error": error_data}, indent=2)


def format_token(token: Token) -> dict[str, Any]:
    """Token fields plus a readable expiry."""
    data = token.to_dict()
    expires_at = token.expires_at
    data["expiresAt"] = expires_at.isoformat() if expires_at else None
    data["expired"] = token.is_expired(buffer_seconds=0)
    return data


class OutputHandler:
    """Handles output formatting based on mode (JSON or human)."""

    def __init__(self, json_mode: bool = False):
        self.json_mode = json_mode

    def success(self, data: Any, human_message: str | None = None) -> None:
        """Output success response."""
        if self.json_mode:
            click.echo(format_json(data))
        elif human_message:
            click.echo(human_message)
        else:
            click.echo(json.dumps(data, indent=2, default=str))

    def error(
        self,
        error: Exception,
        error_type: str | None = None,
        help_text: str | None = None,
    ) -> None:
        """Output error response and exit with status 1."""
        if self.json_mode:
            click.echo(format_error_json(error, error_type, help_text))
        else:
            click.secho(f"Error: {error}", fg="red", err=True)
            if help_text:
                click.echo(f"\n{help_text}", err=True)
        sys.exit(1)
