"""Main CLI application."""

import logging
import sys
from datetime import datetime
from typing import Optional

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from timeflow import __version__
from timeflow.cli.api_commands import api
from timeflow.cli.catalog_commands import client, project
from timeflow.cli.config_commands import config
from timeflow.cli.context import get_config, get_data_dir, get_ledger
from timeflow.core.models import TimerSnapshot, TimerStatus
from timeflow.core.session import create_controller
from timeflow.core.timer import TimerController, TimerError, format_elapsed

console = Console()
error_console = Console(stderr=True)

_logging_configured = False


def setup_logging(level_name: str) -> None:
    """Send log records to stderr at the configured level."""
    global _logging_configured
    if _logging_configured:
        return

    level = getattr(logging, level_name.upper(), logging.WARNING)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    root_logger = logging.getLogger("timeflow")
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    _logging_configured = True


def get_controller(ctx: click.Context) -> TimerController:
    """Get a TimerController with any persisted timer restored."""
    config_mgr = get_config(ctx)
    data_dir = get_data_dir(ctx, config_mgr)
    controller = create_controller(config_mgr, data_dir=data_dir)
    controller.restore()
    return controller


def format_datetime(dt: datetime) -> str:
    """Format datetime for display."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(seconds: int) -> str:
    """Format duration in seconds to human-readable string."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


def render_timer(snapshot: TimerSnapshot, elapsed: int) -> Panel:
    """Render the timer state as a panel."""
    if snapshot.status == TimerStatus.RUNNING:
        style, title = "green", "Running"
    elif snapshot.status == TimerStatus.PAUSED:
        style, title = "yellow", "Paused"
    else:
        style, title = "dim", "Stopped"

    content = f"[bold]{format_elapsed(elapsed)}[/bold]"
    if snapshot.selected_client:
        content += f"\n\n[dim]Client:[/dim] {snapshot.selected_client.name}"
    if snapshot.selected_project:
        content += f"\n[dim]Project:[/dim] {snapshot.selected_project.name}"
    if snapshot.description:
        content += f"\n[dim]Description:[/dim] {snapshot.description}"
    content += f"\n[dim]Billable:[/dim] {'yes' if snapshot.is_billable else 'no'}"

    return Panel(content, title=title, border_style=style)


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("--config", "config_path", help="Path to config file", type=click.Path())
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context, data_dir: Optional[str], config_path: Optional[str], no_color: bool
) -> None:
    """TimeFlow - track client work time and commit it as billable entries.

    A started timer survives restarts: its state is checkpointed on every
    start, pause and resume.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["config_path"] = config_path

    if no_color:
        console.no_color = True

    config_mgr = get_config(ctx)
    setup_logging(config_mgr.get("advanced.log_level", "WARNING"))


@cli.command()
@click.option("-c", "--client", "client_name", required=True, help="Client name or ID")
@click.option("-p", "--project", "project_name", required=True, help="Project name or ID")
@click.option("-d", "--description", default="", help="What you are working on")
@click.option(
    "--billable/--non-billable", default=None, help="Billable time (default: from config)"
)
@click.pass_context
def start(
    ctx: click.Context,
    client_name: str,
    project_name: str,
    description: str,
    billable: Optional[bool],
) -> None:
    """Start the timer for a client's project.

    Example:
        timeflow start -c Acme -p Website -d "Landing page"
    """
    ledger = get_ledger(ctx)
    controller = get_controller(ctx)

    try:
        selected_client = ledger.get_client(client_name)
        if selected_client is None:
            raise TimerError(f"Client not found: {client_name}")
        selected_project = ledger.get_project(project_name, client_id=selected_client.id)
        if selected_project is None:
            raise TimerError(f"Project not found for {selected_client.name}: {project_name}")

        if not controller.is_running:
            controller.select_client(selected_client)
            controller.select_project(selected_project)
            if billable is not None:
                controller.set_billable(billable)
            controller.set_description(description)
        controller.start()

        console.print(f"[green]✓[/green] Timer started: {selected_project.name}")
        console.print(f"  Client: {selected_client.name}")
        if description:
            console.print(f"  Description: {description}")

    except TimerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        controller.close()


@cli.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause the running timer."""
    controller = get_controller(ctx)

    try:
        controller.pause()
        console.print(f"[yellow]⏸[/yellow]  Paused at {format_elapsed(controller.elapsed_time)}")
    except TimerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        controller.close()


@cli.command()
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Resume the paused timer."""
    controller = get_controller(ctx)

    try:
        controller.resume()
        console.print(f"[green]▶[/green]  Resumed at {format_elapsed(controller.elapsed_time)}")
    except TimerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        controller.close()


@cli.command()
@click.option("-d", "--description", default=None, help="Replace the description before committing")
@click.pass_context
def stop(ctx: click.Context, description: Optional[str]) -> None:
    """Stop the timer and record the time entry.

    If the entry cannot be recorded the timer keeps running, so no time is lost.

    Example:
        timeflow stop
        timeflow stop -d "Finished landing page"
    """
    controller = get_controller(ctx)

    try:
        if description is not None and controller.is_running:
            controller.set_description(description)
        entry = controller.stop()

        console.print("[green]✓[/green] Time entry recorded")
        console.print(f"  Duration: {format_duration(entry.duration_seconds)}")
        console.print(f"  Started: {format_datetime(entry.start_time)}")
        console.print(f"  Ended: {format_datetime(entry.end_time)}")

    except TimerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        controller.close()


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def discard(ctx: click.Context, yes: bool) -> None:
    """Throw away the running timer without recording it."""
    controller = get_controller(ctx)

    try:
        if not controller.is_running:
            console.print("[yellow]No timer is running[/yellow]")
            return
        if not yes and not click.confirm("Discard the running timer?"):
            return
        controller.discard()
        console.print("[green]✓[/green] Timer discarded")
    finally:
        controller.close()


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current timer."""
    controller = get_controller(ctx)

    try:
        if not controller.is_running:
            console.print("[yellow]No timer running[/yellow]")
            console.print("\nStart one with: [cyan]timeflow start -c CLIENT -p PROJECT[/cyan]")
            return
        console.print(render_timer(controller.snapshot(), controller.current_elapsed()))
    finally:
        controller.close()


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Show the running timer live. Ctrl-C leaves it running.

    Example:
        timeflow watch
    """
    controller = get_controller(ctx)

    try:
        if not controller.is_running:
            console.print("[yellow]No timer running[/yellow]")
            return

        with Live(
            render_timer(controller.snapshot(), controller.elapsed_time),
            console=console,
            refresh_per_second=4,
        ) as live:
            while controller.is_running:
                if controller.process_events(timeout=0.5):
                    live.update(render_timer(controller.snapshot(), controller.elapsed_time))
    except KeyboardInterrupt:
        console.print(f"\n[dim]{controller.title}[/dim]")
    finally:
        controller.close()


@cli.command()
@click.option("-n", "--count", default=10, help="Number of entries to show")
@click.pass_context
def log(ctx: click.Context, count: int) -> None:
    """List recently recorded time entries.

    Example:
        timeflow log -n 20
    """
    ledger = get_ledger(ctx)
    entries = ledger.load_time_entries(limit=count)

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    projects = {p.id: p for p in ledger.load_projects()}
    clients = {c.id: c for c in ledger.load_clients()}

    table = Table(title="Time Entries")
    table.add_column("Start", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("Client")
    table.add_column("Project", style="green")
    table.add_column("Description")
    table.add_column("Billable", justify="center")

    for entry in entries:
        entry_project = projects.get(entry.project_id)
        entry_client = clients.get(entry_project.client_id) if entry_project else None
        table.add_row(
            format_datetime(entry.start_time),
            format_duration(entry.duration_seconds),
            entry_client.name if entry_client else "",
            entry_project.name if entry_project else entry.project_id,
            entry.description,
            "✓" if entry.billable else "",
        )

    console.print(table)


cli.add_command(client)
cli.add_command(project)
cli.add_command(config)
cli.add_command(api)


if __name__ == "__main__":
    cli()
