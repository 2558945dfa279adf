#!/usr/bin/env python3
"""
Log a trade.

Records the trade, mirrors it to copy followers and walks through any
account milestones it triggered.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging
from datetime import date
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, Prompt

from propjournal.accounts.transitions import AccountEvent, EventBucket, EventKind
from propjournal.commit.pipeline import TradeCommitPipeline
from propjournal.commit.sequencer import (
    BreachResolution,
    CelebrationResolution,
    PayoutResolution,
    QueuePosition,
    Resolution,
)
from propjournal.core.config import Config
from propjournal.core.models import TradeSide
from propjournal.core.store import TradeStore
from propjournal.core.utils import format_amount, parse_amount, parse_trade_date
from propjournal.guardrails.rules import run_all_guardrails
from propjournal.notify.console import ConsoleNotifier
from propjournal.notify.messages import format_event_message
from propjournal.notify.telegram import TelegramNotifier

app = typer.Typer(help="Log a trade")
console = Console()

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

BUCKET_TITLES = {
    EventBucket.CELEBRATION: "[bold green]Milestone reached[/bold green]",
    EventBucket.BREACH: "[bold red]Account breached[/bold red]",
    EventBucket.PAYOUT: "[bold cyan]Payout goal reached[/bold cyan]",
}


def _optional_amount(label: str) -> Optional[float]:
    value = Prompt.ask(f"{label} [dim](blank to keep)[/dim]", default="", console=console)
    return parse_amount(value, default=None)


class PromptSurface:
    """Resolves milestone events interactively."""

    def __init__(self, config: Config, telegram: Optional[TelegramNotifier] = None):
        self.config = config
        self.telegram = telegram

    def present(self, event: AccountEvent, position: QueuePosition) -> Optional[Resolution]:
        header = BUCKET_TITLES[position.bucket]
        if position.total > 1:
            header += f"  [dim]account {position.index + 1} of {position.total}[/dim]"

        console.print()
        console.print(Panel(format_event_message(event, self.config.currency), title=header))

        if self.telegram:
            self.telegram.send_event(event)

        if event.kind in (EventKind.RANK_UP, EventKind.TARGET_HIT):
            return self._celebration(event)
        if event.kind is EventKind.BREACH:
            return self._breach(event)
        return self._payout(event)

    def _celebration(self, event: AccountEvent) -> Optional[Resolution]:
        question = "Start the funded phase now?" if event.kind is EventKind.RANK_UP else "Update the account?"
        if not Confirm.ask(question, default=True, console=console):
            return None

        current = format_amount(event.account.capital, self.config.currency)
        capital = _optional_amount(f"New starting capital (current {current})")
        max_loss = FloatPrompt.ask("Max loss", default=0.0, console=console)
        consistency = _optional_amount("Consistency rule %")

        if event.kind is EventKind.RANK_UP:
            payout_goal = FloatPrompt.ask("Payout goal", default=0.0, console=console)
            return CelebrationResolution(
                capital=capital,
                max_loss=max_loss,
                consistency_rule=consistency,
                payout_goal=payout_goal,
            )

        profit_target = FloatPrompt.ask("New profit target", default=0.0, console=console)
        return CelebrationResolution(
            capital=capital,
            max_loss=max_loss,
            consistency_rule=consistency,
            profit_target=profit_target,
        )

    def _breach(self, event: AccountEvent) -> Optional[Resolution]:
        report = Prompt.ask("What went wrong? [dim](blank to skip)[/dim]", default="", console=console)
        if not report.strip():
            return None
        return BreachResolution(report=report)

    def _payout(self, event: AccountEvent) -> Optional[Resolution]:
        if not Confirm.ask("Record the payout and start a new cycle?", default=True, console=console):
            return None

        currency = self.config.currency
        goal = format_amount(event.account.payout_goal, currency)
        payout_goal = _optional_amount(f"Next payout goal (current {goal})")
        capital = _optional_amount(
            f"New starting balance (default {format_amount(event.account.capital, currency)})"
        )
        return PayoutResolution(payout_goal=payout_goal, capital=capital)


def _build_pipeline(config: Config):
    store = TradeStore(config)
    telegram = TelegramNotifier(config) if config.telegram_enabled else None
    notifier = ConsoleNotifier(console, forward=telegram)
    return store, TradeCommitPipeline(store, notifier), telegram


@app.command()
def main(
    account_id: int = typer.Option(..., "--account", "-a", help="Account ID"),
    symbol: str = typer.Option(..., "--symbol", "-s", help="Symbol (e.g., NQ)"),
    pnl: str = typer.Option(..., "--pnl", "-p", help="Realized PnL"),
    side: TradeSide = typer.Option(TradeSide.LONG, "--side", help="LONG or SHORT"),
    trade_date: str = typer.Option(None, "--date", "-d", help="Trade date (YYYY-MM-DD), default today"),
    risk_percent: Optional[float] = typer.Option(None, "--risk", "-r", help="Risk in % of account"),
    notes: str = typer.Option("", "--notes", "-n", help="Trade notes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Record a new trade.

    Copies it to followers and resolves any milestones it triggered.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()
    config = Config.from_env()
    store, pipeline, telegram = _build_pipeline(config)

    day = trade_date or date.today().isoformat()

    # Print guardrails first
    try:
        warnings = run_all_guardrails(store, account_id, parse_trade_date(day), pnl)
    except ValueError:
        warnings = []  # Reported by the pipeline
    for warning in warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    result = pipeline.submit({
        "account_id": account_id,
        "date": day,
        "symbol": symbol,
        "side": side,
        "pnl": pnl,
        "risk_percent": risk_percent,
        "notes": notes or None,
    })

    if not result.success:
        for name, problem in result.field_errors.items():
            console.print(f"  [red]{name}: {problem}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[green]Trade #{result.trade.id} logged.[/green]")

    if result.replication and result.replication.failures:
        console.print(f"[red]{len(result.replication.failures)} copy trade(s) failed.[/red]")

    try:
        outcomes = pipeline.resolve(result, PromptSurface(config, telegram))
    except (KeyboardInterrupt, EOFError):
        result.sequencer.abandon()
        outcomes = result.sequencer.outcomes
        console.print("\n[yellow]Remaining milestones skipped.[/yellow]")

    not_applied = [o for o in outcomes if o.error]
    if not_applied:
        console.print(f"[red]{len(not_applied)} account update(s) were not applied.[/red]")


@app.command()
def edit(
    trade_id: int = typer.Argument(..., help="Trade ID"),
    pnl: str = typer.Option(None, "--pnl", "-p", help="Corrected PnL"),
    symbol: str = typer.Option(None, "--symbol", "-s", help="Corrected symbol"),
    notes: str = typer.Option(None, "--notes", "-n", help="Trade notes"),
):
    """
    Edit an existing trade.

    Edits never trigger milestones or copy trades.
    """
    load_dotenv()
    config = Config.from_env()
    store, pipeline, _ = _build_pipeline(config)

    trade = store.get_trade(trade_id)
    if not trade:
        console.print(f"[red]Trade #{trade_id} not found.[/red]")
        raise typer.Exit(1)

    result = pipeline.submit(
        {
            "account_id": trade.account_id,
            "date": trade.date,
            "symbol": symbol or trade.symbol,
            "pnl": pnl if pnl is not None else trade.pnl,
            "notes": notes if notes is not None else trade.notes,
        },
        trade_id=trade_id,
    )

    if not result.success:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
