"""CLI commands for clients and projects."""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from timeflow.cli.context import get_ledger
from timeflow.core.ledger import LedgerError

console = Console()
error_console = Console(stderr=True)


@click.group()
def client() -> None:
    """Manage clients."""
    pass


@client.command("add")
@click.argument("name")
@click.option("-e", "--email", default="", help="Contact address for reports")
@click.pass_context
def client_add(ctx: click.Context, name: str, email: str) -> None:
    """Create a client.

    Example:
        timeflow client add "Acme Corp" -e billing@acme.test
    """
    ledger = get_ledger(ctx)
    try:
        created = ledger.add_client(name, email)
    except LedgerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Created client: {created.name}")


@client.command("list")
@click.pass_context
def client_list(ctx: click.Context) -> None:
    """List clients."""
    clients = get_ledger(ctx).load_clients()
    if not clients:
        console.print("[yellow]No clients yet[/yellow]")
        return

    table = Table(title="Clients")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("ID", style="dim")
    for c in clients:
        table.add_row(c.name, c.email, c.id)
    console.print(table)


@click.group()
def project() -> None:
    """Manage projects."""
    pass


@project.command("add")
@click.argument("name")
@click.option("-c", "--client", "client_name", required=True, help="Client name or ID")
@click.pass_context
def project_add(ctx: click.Context, name: str, client_name: str) -> None:
    """Create a project for a client.

    Example:
        timeflow project add Website -c "Acme Corp"
    """
    ledger = get_ledger(ctx)
    owner = ledger.get_client(client_name)
    if owner is None:
        error_console.print(f"[red]Error:[/red] Client not found: {client_name}")
        sys.exit(1)
    try:
        created = ledger.add_project(name, owner.id)
    except LedgerError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Created project: {created.name} ({owner.name})")


@project.command("list")
@click.option("-c", "--client", "client_name", default=None, help="Only this client's projects")
@click.pass_context
def project_list(ctx: click.Context, client_name: Optional[str]) -> None:
    """List projects."""
    ledger = get_ledger(ctx)
    client_id = None
    if client_name:
        owner = ledger.get_client(client_name)
        if owner is None:
            error_console.print(f"[red]Error:[/red] Client not found: {client_name}")
            sys.exit(1)
        client_id = owner.id

    projects = ledger.load_projects(client_id)
    if not projects:
        console.print("[yellow]No projects found[/yellow]")
        return

    clients = {c.id: c.name for c in ledger.load_clients()}
    table = Table(title="Projects")
    table.add_column("Name", style="green")
    table.add_column("Client")
    table.add_column("ID", style="dim")
    for p in projects:
        table.add_row(p.name, clients.get(p.client_id, p.client_id), p.id)
    console.print(table)
