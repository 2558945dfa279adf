"""
Performance statistics.

Win rate, profit factor and recent results for an account since its
last reset.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from propjournal.accounts.stats import Stats, compute_account_stats, is_breached
from propjournal.core.models import Account
from propjournal.core.store import TradeStore

logger = logging.getLogger(__name__)

SPARKLINE_LENGTH = 20
# Profit factor shown when there are wins and no losses
MAX_PROFIT_FACTOR = 100.0


@dataclass
class PerformanceSummary:
    """Trade quality figures for one account."""

    trade_count: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    recent_pnl: List[float] = field(default_factory=list)


def summarize_performance(trades: Iterable) -> PerformanceSummary:
    """
    Summarize a list of trades.

    Break-even trades count as losses for the win rate.
    """
    ordered = sorted(trades, key=lambda t: (t.date, t.created_at is None, t.created_at, t.id or 0))
    if not ordered:
        return PerformanceSummary()

    pnls = [float(t.pnl or 0) for t in ordered]
    wins = sum(1 for p in pnls if p > 0)
    gross_profit = sum(p for p in pnls if p > 0)
    gross_loss = abs(sum(p for p in pnls if p < 0))

    if gross_loss == 0:
        profit_factor = MAX_PROFIT_FACTOR if gross_profit > 0 else 0.0
    else:
        profit_factor = gross_profit / gross_loss

    return PerformanceSummary(
        trade_count=len(pnls),
        wins=wins,
        losses=len(pnls) - wins,
        win_rate=wins / len(pnls) * 100,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=profit_factor,
        recent_pnl=pnls[-SPARKLINE_LENGTH:],
    )


@dataclass
class AccountOverview:
    """Everything the account list shows for one account."""

    account: Account
    stats: Stats
    performance: PerformanceSummary
    breached: bool


def get_account_overviews(store: TradeStore) -> List[AccountOverview]:
    """Stats and performance for every account."""
    overviews = []

    for account in store.list_accounts():
        trades = store.get_trades_for_account(account.id, since=account.reset_date)
        stats = compute_account_stats(
            account, trades, caution_ratio=store.config.consistency_caution_ratio
        )
        overviews.append(AccountOverview(
            account=account,
            stats=stats,
            performance=summarize_performance(trades),
            breached=is_breached(account, stats),
        ))

    return overviews
