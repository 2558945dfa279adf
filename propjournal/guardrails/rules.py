"""
Behavioral guardrails.

Checks a pending trade against the account's consistency rule before
it is recorded. Warns but never blocks the trade.
"""

import logging
from datetime import date
from typing import List, Optional

from propjournal.accounts.consistency import max_daily_profit
from propjournal.core.store import TradeStore
from propjournal.core.utils import parse_amount

logger = logging.getLogger(__name__)


class GuardrailWarning:
    """A guardrail warning message."""

    def __init__(self, category: str, message: str):
        self.category = category
        self.message = message

    def __str__(self) -> str:
        return f"[{self.category}] {self.message}"


def check_consistency_limit(
    account,
    trades: List,
    trade_date: date,
    pnl: float,
    caution_ratio: float = 0.8,
) -> Optional[GuardrailWarning]:
    """
    Check whether a pending profit pushes the day past the consistency cap.

    Uses the day's PnL and the account's total PnL including the pending
    trade. Only profitable trades are checked.
    """
    cap = max_daily_profit(account)
    if cap is None or pnl <= 0:
        return None

    day_pnl = sum(float(t.pnl or 0) for t in trades if t.date == trade_date) + pnl
    total_pnl = sum(float(t.pnl or 0) for t in trades) + pnl
    rule = float(account.consistency_rule)
    profit_target = float(account.profit_target)

    if day_pnl > cap and total_pnl > cap:
        return GuardrailWarning(
            "CONSISTENCY",
            f"Today's total profit (${day_pnl:,.2f}) exceeds the {rule:g}% consistency "
            f"limit (${cap:,.2f}) of your ${profit_target:,.0f} profit target."
        )

    caution_level = cap * caution_ratio
    if day_pnl > caution_level and total_pnl > caution_level:
        return GuardrailWarning(
            "CONSISTENCY_CAUTION",
            f"Today's total profit (${day_pnl:,.2f}) is approaching the {rule:g}% "
            f"consistency limit (${cap:,.2f})."
        )

    return None


def run_all_guardrails(
    store: TradeStore,
    account_id: int,
    trade_date: date,
    pnl,
) -> List[GuardrailWarning]:
    """
    Run all guardrail checks for a pending trade.

    Returns list of warnings (empty if none).
    """
    warnings: List[GuardrailWarning] = []

    account = store.get_account(account_id)
    if account is None:
        return warnings

    trades = store.get_trades_for_account(account_id, since=account.reset_date)

    consistency_warning = check_consistency_limit(
        account,
        trades,
        trade_date,
        parse_amount(pnl),
        caution_ratio=store.config.consistency_caution_ratio,
    )
    if consistency_warning:
        warnings.append(consistency_warning)

    if account.breach_report:
        warnings.append(GuardrailWarning(
            "BREACHED",
            f"{account.name} has a breach report on file. Reset it before trading again."
        ))

    # Log all warnings
    for warning in warnings:
        logger.warning(f"Guardrail: {warning}")

    return warnings
