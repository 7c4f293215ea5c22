"""CLI commands for configuration management."""

import json
import shutil
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from timeflow.cli.context import get_config

console = Console()
error_console = Console(stderr=True)


def convert_value(value: str) -> Any:
    """Convert a command-line string to the matching YAML scalar type."""
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if lowered == "null":
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


@click.group()
def config() -> None:
    """Manage TimeFlow configuration.

    Configuration is stored in ~/.timeflow/config.yml
    """
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show all configuration settings.

    Example:
        timeflow config show
        timeflow config show --json
    """
    config_mgr = get_config(ctx)

    if as_json:
        click.echo(json.dumps(config_mgr.to_dict(), indent=2))
        return

    table = Table(title="TimeFlow Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    def add_rows(prefix: str, data: dict[str, Any]) -> None:
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                add_rows(full_key, value)
            elif full_key == "api.authentication.secret_key" and value:
                table.add_row(full_key, "********")
            else:
                table.add_row(full_key, str(value))

    add_rows("", config_mgr.to_dict())
    console.print(table)
    console.print(f"\nConfig file: {config_mgr.config_path}")


@config.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Get a specific configuration value.

    Uses dot notation to access nested values.

    Example:
        timeflow config get timer.tick_interval
        timeflow config get storage.structured_backend
    """
    config_mgr = get_config(ctx)
    value = config_mgr.get(key)

    if value is None:
        error_console.print(f"[red]Error:[/red] Configuration key '{key}' not found")
        sys.exit(1)

    if isinstance(value, dict):
        click.echo(json.dumps(value, indent=2))
    else:
        click.echo(str(value))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    Values are converted to booleans, numbers or null where they look like one.

    Example:
        timeflow config set timer.tick_interval 0.5
        timeflow config set timer.default_billable false
        timeflow config set general.user_id alice
    """
    config_mgr = get_config(ctx)
    converted_value = convert_value(value)

    try:
        config_mgr.set(key, converted_value)
        console.print(f"[green]✓[/green] Set {key} = {converted_value}")
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@config.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def config_reset(ctx: click.Context, yes: bool) -> None:
    """Reset configuration to defaults.

    Example:
        timeflow config reset --yes
    """
    config_mgr = get_config(ctx)

    if not yes:
        console.print("[yellow]Warning:[/yellow] This will reset all configuration to defaults.")
        if not click.confirm("Continue?"):
            console.print("Cancelled")
            return

    backup_path = config_mgr.config_path.with_suffix(".yml.backup")
    if config_mgr.config_path.exists():
        shutil.copy(config_mgr.config_path, backup_path)
        console.print(f"Backed up current config to {backup_path}")

    config_mgr.reset()
    console.print("[green]✓[/green] Configuration reset to defaults")


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate configuration file."""
    config_mgr = get_config(ctx)

    try:
        config_mgr.validate()
        console.print("[green]✓[/green] Configuration is valid")
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Show path to configuration file."""
    click.echo(str(get_config(ctx).config_path))
