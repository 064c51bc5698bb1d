"""Reverie command line: ``reverie-server serve`` and ``reverie-server generate-key``.

``python -m reverie.core.server.main`` is the same command line.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address
from typing import Optional
from urllib.parse import urlsplit

import typer

from reverie.core.config.settings import Settings, get_settings
from reverie.core.server.app import create_app
from reverie.core.storage.encryption import FieldEncryptor

logger = logging.getLogger(__name__)

app = typer.Typer(help="Reverie dream journal MCP server")


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _sends_token_in_clear(api_url: str) -> bool:
    """True when bearer tokens would travel over plain HTTP to another machine."""
    parts = urlsplit(api_url)
    return parts.scheme == "http" and not _is_loopback_host(parts.hostname or "")


def _check_startup(settings: Settings, host: str) -> None:
    if not settings.reverie_allow_insecure_bind and not _is_loopback_host(host):
        raise RuntimeError(
            f"Refusing to bind the Reverie server to non-loopback host {host!r}: its tools "
            "act with the signed-in user's credential. "
            "Set REVERIE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    if _sends_token_in_clear(settings.reverie_api_url):
        logger.warning(
            "REVERIE_API_URL %s is plain HTTP; sign-in tokens are sent unencrypted",
            settings.reverie_api_url,
        )
    if settings.persist_session and not settings.encryption_key:
        logger.warning(
            "Session and journal are persisted unencrypted in %s. "
            "Run `reverie-server generate-key` and set ENCRYPTION_KEY.",
            settings.db_path,
        )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Start the server when no command is given."""
    if ctx.invoked_subcommand is None:
        serve(host=None, port=None)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default REVERIE_HOST)."),
    port: Optional[int] = typer.Option(None, help="Port (default REVERIE_PORT)."),
) -> None:
    """Start the Reverie MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.reverie_log_level.upper(), logging.INFO)
    )
    bind_host = host or settings.reverie_host
    bind_port = port or settings.reverie_port
    _check_startup(settings, bind_host)

    logger.info("Starting Reverie dream journal server on %s:%d", bind_host, bind_port)
    mcp = create_app()
    mcp.run(transport="streamable-http", host=bind_host, port=bind_port)


@app.command("generate-key")
def generate_key() -> None:
    """Print a fresh ENCRYPTION_KEY value.

    To rotate, put the new key first: ENCRYPTION_KEY=<new>,<old>.
    """
    typer.echo(FieldEncryptor.generate_key())


def run() -> None:
    app()


if __name__ == "__main__":
    run()
