"""
Display utilities for the command line.

Renders server setup and control data as rich tables.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from pgcontrol.outcomes import PROGRAM_NOT_RUNNING
from pgcontrol.server import ServerSetup


def status_label(returncode: int) -> str:
    """Human label for a ``pg_ctl status`` exit code."""
    if returncode == 0:
        return "[green]running[/green]"
    if returncode == PROGRAM_NOT_RUNNING:
        return "[yellow]not running[/yellow]"
    return f"[red]unknown (pg_ctl status returned {returncode})[/red]"


def display_status(
    setup: ServerSetup, returncode: int, console: Console | None = None
) -> None:
    """Show a one-table summary of the server and its status."""
    if console is None:
        console = Console()

    table = Table(title="PostgreSQL", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Status", status_label(returncode))
    table.add_row("PGDATA", str(setup.pgdata))
    table.add_row("pg_ctl", str(setup.pg_ctl))
    table.add_row("Port", str(setup.port))
    table.add_row("Listen", setup.listen_addresses)

    console.print(table)


def display_controldata(setup: ServerSetup, console: Console | None = None) -> None:
    """Show the parsed pg_controldata snapshot."""
    if console is None:
        console = Console()

    table = Table(title=f"Control data: {setup.pgdata}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    data: dict[str, Any] = setup.control.to_dict()
    for key, value in data.items():
        table.add_row(key, "" if value is None else str(value))

    console.print(table)
