"""
Account statistics.

Derives an account's financial state from the trades recorded since its
last reset. Nothing here touches the database; callers pass the trades
in, optionally with one pending trade to preview the state after it.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from propjournal.accounts.consistency import (
    DEFAULT_CAUTION_RATIO,
    ConsistencyResult,
    ConsistencySeverity,
    evaluate_consistency,
)
from propjournal.core.models import account_type_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountStats:
    """Balance and PnL of a Live, Demo or Backtesting account."""

    account_id: int
    balance: float
    total_pnl: float
    trade_count: int


@dataclass(frozen=True)
class RuleAccountStats(AccountStats):
    """
    Stats of an Evaluation or Funded account.

    mll is the balance floor; crossing it from above is a breach.
    """

    mll: float
    target: float
    consistency: ConsistencyResult

    @property
    def drawdown_remaining(self) -> float:
        return self.balance - self.mll

    @property
    def remaining_to_target(self) -> float:
        return self.target - self.balance

    @property
    def consistency_valid(self) -> Optional[bool]:
        return self.consistency.valid

    @property
    def consistency_severity(self) -> Optional[ConsistencySeverity]:
        return self.consistency.severity

    @property
    def updated_target(self) -> Optional[float]:
        return self.consistency.updated_target

    @property
    def updated_remaining_to_target(self) -> Optional[float]:
        return self.consistency.updated_remaining_to_target


Stats = Union[AccountStats, RuleAccountStats]


def compute_account_stats(
    account,
    trades: Iterable,
    pending=None,
    caution_ratio: float = DEFAULT_CAUTION_RATIO,
) -> Stats:
    """
    Compute an account's stats snapshot.

    Args:
        account: Account row
        trades: Trades counted since the account's reset
        pending: Optional trade not yet stored, included as if recorded
        caution_ratio: Fraction of the daily cap that triggers a caution

    Returns:
        RuleAccountStats for Evaluation/Funded accounts, AccountStats otherwise
    """
    counted: List = list(trades)
    if pending is not None:
        counted.append(pending)

    total_pnl = sum(float(t.pnl or 0) for t in counted)
    capital = float(account.capital or 0)
    balance = capital + total_pnl

    if not account_type_of(account).is_rule_account:
        return AccountStats(
            account_id=account.id,
            balance=balance,
            total_pnl=total_pnl,
            trade_count=len(counted),
        )

    mll = capital - float(account.max_loss or 0)
    target = capital + float(account.profit_target or 0)

    consistency = evaluate_consistency(
        account,
        counted,
        balance=balance,
        target=target,
        caution_ratio=caution_ratio,
    )

    return RuleAccountStats(
        account_id=account.id,
        balance=balance,
        total_pnl=total_pnl,
        trade_count=len(counted),
        mll=mll,
        target=target,
        consistency=consistency,
    )


def is_breached(account, stats: Stats) -> bool:
    """
    Whether an account should be shown as breached.

    True for rule accounts at or below their floor, or with a breach
    report on file.
    """
    if not isinstance(stats, RuleAccountStats):
        return False

    has_floor = float(account.max_loss or 0) > 0
    return (has_floor and stats.balance <= stats.mll) or bool(account.breach_report)
