#!/usr/bin/env python3
"""
Copy group management CLI.

Link follower accounts to a leader so its trades are mirrored.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from propjournal.core.config import Config
from propjournal.core.store import CopyGroupError, TradeStore

app = typer.Typer(help="Manage copy trading groups")
console = Console()


def _store() -> TradeStore:
    load_dotenv()
    return TradeStore(Config.from_env())


@app.command()
def create(
    name: str = typer.Argument(..., help="Group name"),
    leader: int = typer.Option(..., "--leader", "-l", help="Leader account ID"),
):
    """Create a copy group."""
    store = _store()

    try:
        group = store.add_copy_group(name, leader)
    except CopyGroupError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Copy group #{group.id} created.[/green]")


@app.command("add-member")
def add_member(
    group_id: int = typer.Argument(..., help="Group ID"),
    follower: int = typer.Option(..., "--follower", "-f", help="Follower account ID"),
    multiplier: float = typer.Option(None, "--multiplier", "-m", help="Risk multiplier"),
):
    """Add a follower account to a group."""
    store = _store()

    if multiplier is None:
        multiplier = store.config.default_risk_multiplier

    try:
        store.add_copy_member(group_id, follower, risk_multiplier=multiplier)
    except CopyGroupError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Account #{follower} now follows group #{group_id} (x{multiplier}).[/green]")


@app.command()
def enable(group_id: int = typer.Argument(..., help="Group ID")):
    """Resume copying for a group."""
    try:
        _store().set_copy_group_active(group_id, True)
    except CopyGroupError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Copy group #{group_id} enabled.[/green]")


@app.command()
def disable(group_id: int = typer.Argument(..., help="Group ID")):
    """Pause copying for a group."""
    try:
        _store().set_copy_group_active(group_id, False)
    except CopyGroupError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[yellow]Copy group #{group_id} disabled.[/yellow]")


@app.command("list")
def list_groups():
    """List copy groups and their followers."""
    store = _store()
    names = {a.id: a.name for a in store.list_accounts()}

    table = Table(title="Copy Groups")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Leader")
    table.add_column("Followers")
    table.add_column("Active")

    for group in store.list_copy_groups():
        followers = ", ".join(
            f"{names.get(m.follower_account_id, m.follower_account_id)} (x{m.risk_multiplier:g})"
            for m in group.members
        )
        table.add_row(
            str(group.id),
            group.name,
            names.get(group.leader_account_id, str(group.leader_account_id)),
            followers or "-",
            "yes" if group.is_active else "no",
        )

    console.print(table)


if __name__ == "__main__":
    app()
