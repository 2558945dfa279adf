"""
Consistency rule evaluation.

A consistency rule caps how much of an account's profit target may be
earned on a single trading day. Breaking the cap does not fail the
account; it raises the effective target instead.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterable, Optional

from propjournal.core.models import account_type_of

logger = logging.getLogger(__name__)

DEFAULT_CAUTION_RATIO = 0.8


class ConsistencySeverity(str, Enum):
    """How close the best day is to the daily cap."""
    CAUTION = "caution"
    VIOLATION = "violation"


@dataclass(frozen=True)
class ConsistencyResult:
    """
    Outcome of a consistency check.

    valid is None when no rule applies to the account, which is not
    the same as a satisfied rule.
    """

    valid: Optional[bool] = None
    severity: Optional[ConsistencySeverity] = None
    max_daily_profit: Optional[float] = None
    failing_day: Optional[date] = None
    excess: float = 0.0
    updated_target: Optional[float] = None
    updated_remaining_to_target: Optional[float] = None

    @property
    def applies(self) -> bool:
        return self.valid is not None


NOT_APPLICABLE = ConsistencyResult()


def max_daily_profit(account) -> Optional[float]:
    """
    Daily profit cap for an account.

    Returns None unless the account is an evaluation or funded account
    with both a consistency rule and a profit target.
    """
    if not account_type_of(account).is_rule_account:
        return None

    rule = float(account.consistency_rule or 0)
    profit_target = float(account.profit_target or 0)

    if rule <= 0 or profit_target <= 0:
        return None

    return profit_target * (rule / 100)


def daily_pnl(trades: Iterable) -> Dict[date, float]:
    """Sum trade PnL per calendar day, in day order."""
    days: Dict[date, float] = {}
    for trade in trades:
        days[trade.date] = days.get(trade.date, 0.0) + float(trade.pnl or 0)

    return dict(sorted(days.items()))


def evaluate_consistency(
    account,
    trades: Iterable,
    balance: float,
    target: float,
    caution_ratio: float = DEFAULT_CAUTION_RATIO,
) -> ConsistencyResult:
    """
    Check the account's trades against its consistency rule.

    A day violates the rule when its profit exceeds the daily cap while
    the account's total profit also exceeds the cap. Every violating
    day raises the target by the amount it went over the cap:

        updated_target = target + sum(day_pnl - cap for violating days)

    Days above caution_ratio of the cap only produce an advisory
    CAUTION severity and leave the rule satisfied.
    """
    cap = max_daily_profit(account)
    if cap is None:
        return NOT_APPLICABLE

    days = daily_pnl(trades)
    total_profit = sum(days.values())

    violating = {}
    if total_profit > cap:
        violating = {day: pnl for day, pnl in days.items() if pnl > cap}

    if violating:
        excess = sum(pnl - cap for pnl in violating.values())
        updated_target = target + excess
        failing_day = next(iter(violating))

        logger.debug(
            f"Consistency violated on account {account.id}: "
            f"{len(violating)} day(s) over {cap:.2f}, target {target:.2f} -> {updated_target:.2f}"
        )

        return ConsistencyResult(
            valid=False,
            severity=ConsistencySeverity.VIOLATION,
            max_daily_profit=cap,
            failing_day=failing_day,
            excess=excess,
            updated_target=updated_target,
            updated_remaining_to_target=updated_target - balance,
        )

    caution_level = cap * caution_ratio
    severity = None
    if total_profit > caution_level and any(pnl > caution_level for pnl in days.values()):
        severity = ConsistencySeverity.CAUTION

    return ConsistencyResult(
        valid=True,
        severity=severity,
        max_daily_profit=cap,
    )
