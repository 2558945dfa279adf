"""
Account maintenance.

Soft resets, undoing a reset and manual breach reports. A reset only
moves the account's stats anchor; no trade is ever deleted.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from propjournal.accounts.stats import Stats, compute_account_stats
from propjournal.core.models import Account
from propjournal.core.store import StoreError, TradeStore
from propjournal.core.utils import utcnow

logger = logging.getLogger(__name__)


def load_account_stats(
    store: TradeStore,
    account: Account,
    pending=None,
    caution_ratio: Optional[float] = None,
) -> Stats:
    """Compute stats from the trades recorded since the account's reset."""
    trades = store.get_trades_for_account(account.id, since=account.reset_date)

    if caution_ratio is None:
        caution_ratio = store.config.consistency_caution_ratio

    return compute_account_stats(account, trades, pending=pending, caution_ratio=caution_ratio)


def reset_account(
    store: TradeStore,
    account_id: int,
    clock: Callable[[], datetime] = utcnow,
) -> Account:
    """
    Start the account over from now.

    The previous anchor is kept so the reset can be undone.
    """
    account = store.get_account(account_id)
    if account is None:
        raise StoreError(f"Account {account_id} not found")

    updated = store.update_account(
        account_id,
        prev_reset_date=account.reset_date,
        reset_date=clock(),
        breach_report=None,
    )
    logger.info(f"Reset account {account_id} at {updated.reset_date}")
    return updated


def undo_reset(store: TradeStore, account_id: int) -> Account:
    """
    Restore the anchor that was active before the last reset.

    Raises ValueError if there is no reset to undo.
    """
    account = store.get_account(account_id)
    if account is None:
        raise StoreError(f"Account {account_id} not found")

    if account.prev_reset_date is None:
        raise ValueError(f"Account {account_id} has no reset to undo")

    updated = store.update_account(
        account_id,
        reset_date=account.prev_reset_date,
        prev_reset_date=None,
        breach_report=None,
    )
    logger.info(f"Undid reset of account {account_id}, anchor back to {updated.reset_date}")
    return updated


def flag_breach(store: TradeStore, account_id: int, report: str) -> Account:
    """Mark an account as breached with a report."""
    report = report.strip()
    if not report:
        raise ValueError("Breach report must not be empty")

    updated = store.update_account(account_id, breach_report=report)
    logger.warning(f"Account {account_id} flagged as breached")
    return updated


def clear_breach(store: TradeStore, account_id: int) -> Account:
    """Withdraw an account's breach report."""
    updated = store.update_account(account_id, breach_report=None)
    logger.info(f"Breach report of account {account_id} cleared")
    return updated
