#!/usr/bin/env python3
"""
Account management CLI.

Create accounts, view their stats, and reset or flag them.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from propjournal.accounts.maintenance import clear_breach, flag_breach, reset_account, undo_reset
from propjournal.accounts.stats import RuleAccountStats
from propjournal.core.config import Config
from propjournal.core.models import AccountType
from propjournal.core.store import StoreError, TradeStore
from propjournal.core.utils import format_currency
from propjournal.review.stats import get_account_overviews

app = typer.Typer(help="Manage trading accounts")
console = Console()


def _store() -> TradeStore:
    load_dotenv()
    return TradeStore(Config.from_env())


@app.command()
def add(
    name: str = typer.Argument(..., help="Account name"),
    account_type: AccountType = typer.Option(AccountType.EVALUATION, "--type", "-t", help="Account type"),
    capital: float = typer.Option(..., "--capital", "-c", help="Starting capital"),
    profit_target: float = typer.Option(0.0, "--target", help="Profit target (0 = none)"),
    max_loss: float = typer.Option(0.0, "--max-loss", help="Max loss (0 = none)"),
    consistency_rule: Optional[float] = typer.Option(None, "--consistency", help="Consistency rule in %"),
    payout_goal: float = typer.Option(0.0, "--payout-goal", help="Payout goal (0 = none)"),
    prop_firm: Optional[str] = typer.Option(None, "--firm", help="Prop firm name"),
):
    """Create a new account."""
    store = _store()

    account = store.add_account(
        name=name,
        type=account_type,
        capital=capital,
        profit_target=profit_target,
        max_loss=max_loss,
        consistency_rule=consistency_rule,
        payout_goal=payout_goal,
        prop_firm=prop_firm,
        currency=store.config.currency,
    )
    console.print(f"\n[green]Account #{account.id} created.[/green]\n")


@app.command("list")
def list_accounts():
    """List all accounts with their current stats."""
    store = _store()
    currency = store.config.currency

    table = Table(title="Accounts")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Balance", justify="right")
    table.add_column("PnL", justify="right")
    table.add_column("Floor", justify="right")
    table.add_column("To Target", justify="right")
    table.add_column("Consistency")
    table.add_column("Win Rate", justify="right")

    for overview in get_account_overviews(store):
        account = overview.account
        stats = overview.stats

        floor = to_target = consistency = "-"
        if isinstance(stats, RuleAccountStats):
            floor = f"${stats.mll:,.2f}" if account.max_loss else "-"
            remaining = stats.updated_remaining_to_target
            if remaining is None:
                remaining = stats.remaining_to_target
            to_target = f"${remaining:,.2f}" if account.profit_target else "-"
            if stats.consistency_valid is not None:
                consistency = "[green]OK[/green]" if stats.consistency_valid else "[red]Violated[/red]"

        name = f"[red]{account.name} (breached)[/red]" if overview.breached else account.name

        table.add_row(
            str(account.id),
            name,
            account.type.value,
            f"${stats.balance:,.2f}",
            format_currency(stats.total_pnl, currency),
            floor,
            to_target,
            consistency,
            f"{overview.performance.win_rate:.0f}%",
        )

    console.print(table)


@app.command()
def reset(account_id: int = typer.Argument(..., help="Account ID")):
    """Start an account over without deleting its trades."""
    store = _store()

    if not typer.confirm(f"Reset account #{account_id}? Current history will be archived."):
        raise typer.Exit(0)

    try:
        reset_account(store, account_id)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Account #{account_id} reset.[/green]")


@app.command("undo-reset")
def undo(account_id: int = typer.Argument(..., help="Account ID")):
    """Restore the account's history from before its last reset."""
    store = _store()

    try:
        undo_reset(store, account_id)
    except (StoreError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Reset of account #{account_id} undone.[/green]")


@app.command()
def breach(
    account_id: int = typer.Argument(..., help="Account ID"),
    report: str = typer.Option(..., "--report", "-r", prompt="What went wrong?", help="Breach report"),
):
    """Mark an account as breached."""
    store = _store()

    try:
        flag_breach(store, account_id, report)
    except (StoreError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[yellow]Account #{account_id} marked as breached.[/yellow]")


@app.command()
def unbreach(account_id: int = typer.Argument(..., help="Account ID")):
    """Withdraw an account's breach report."""
    store = _store()

    try:
        clear_breach(store, account_id)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Breach report of account #{account_id} cleared.[/green]")


if __name__ == "__main__":
    app()
