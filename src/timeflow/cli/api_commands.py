"""CLI commands for the REST API: serving it and issuing tokens."""

import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click

from timeflow.api.auth import create_token_for_user
from timeflow.api.server import run_server
from timeflow.cli.context import get_config


@click.group()
def api() -> None:
    """API server management commands."""
    pass


@api.command()
@click.option("--host", default=None, help="Host address (default: from config)")
@click.option("--port", type=int, default=None, help="Port number (default: from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--ssl-cert", type=click.Path(exists=True), help="Path to SSL certificate file")
@click.option("--ssl-key", type=click.Path(exists=True), help="Path to SSL key file")
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    reload: bool,
    ssl_cert: Optional[str],
    ssl_key: Optional[str],
) -> None:
    """Start the API server.

    Examples:
        timeflow api serve
        timeflow api serve --host 0.0.0.0 --port 8080
        timeflow api serve --ssl-cert cert.pem --ssl-key key.pem
    """
    config = get_config(ctx)

    if not config.get("api.enabled", False):
        click.echo(
            click.style("⚠️  API is not enabled in configuration", fg="yellow"), err=True
        )
        click.echo("\nTo enable the API, run:")
        click.echo("  timeflow config set api.enabled true")
        sys.exit(1)

    config.ensure_api_secret_key()

    final_host = host or config.get("api.host", "localhost")
    final_port = port or config.get("api.port", 8000)

    ssl_cert_path = Path(ssl_cert) if ssl_cert and ssl_key else None
    ssl_key_path = Path(ssl_key) if ssl_cert and ssl_key else None

    protocol = "https" if ssl_cert_path else "http"
    click.echo("🚀 Starting TimeFlow API server...")
    click.echo(f"   URL: {protocol}://{final_host}:{final_port}")
    click.echo(f"   Docs: {protocol}://{final_host}:{final_port}/docs")
    if reload:
        click.echo("   Mode: Development (auto-reload enabled)")
    click.echo()

    try:
        run_server(
            config=config,
            host=final_host,
            port=final_port,
            reload=reload,
            ssl_certfile=ssl_cert_path,
            ssl_keyfile=ssl_key_path,
        )
    except KeyboardInterrupt:
        click.echo("\n\n👋 Shutting down API server...")
    except Exception as e:
        click.echo(click.style(f"❌ Error starting server: {e}", fg="red"), err=True)
        sys.exit(1)


@api.group()
def token() -> None:
    """Manage API authentication tokens."""
    pass


@token.command("create")
@click.option("--user", "user_id", default=None, help="User id (default: general.user_id)")
@click.option("--expires", type=int, default=None, help="Expiry in hours (default: from config)")
@click.pass_context
def create_token_cmd(ctx: click.Context, user_id: Optional[str], expires: Optional[int]) -> None:
    """Create a new authentication token.

    The user id becomes the token subject; time entries committed through
    the API are attributed to it.

    Examples:
        timeflow api token create
        timeflow api token create --user alice --expires 48
    """
    config = get_config(ctx)

    user_id = user_id or config.get_user_id()
    if not user_id:
        click.echo(
            click.style("❌ No user id: pass --user or set general.user_id", fg="red"), err=True
        )
        sys.exit(1)

    if expires is None:
        expires = config.get("api.authentication.token_expiry_hours", 24)

    token_data = create_token_for_user(
        config, user_id=user_id, expires_delta=timedelta(hours=expires)
    )

    click.echo("✅ Token created successfully!")
    click.echo()
    click.echo(f"Token: {token_data['access_token']}")
    click.echo(f"User: {user_id}")
    click.echo(f"Expires in: {expires} hours")
    click.echo()
    click.echo("Use this token in API requests:")
    click.echo(f"  Authorization: Bearer {token_data['access_token']}")
    click.echo()
    host = config.get("api.host", "localhost")
    port = config.get("api.port", 8000)
    click.echo("Example curl command:")
    click.echo(
        f'  curl -H "Authorization: Bearer {token_data["access_token"]}" '
        f"http://{host}:{port}/api/v1/timer"
    )
