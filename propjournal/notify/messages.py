"""
Notification texts.

Shared wording for console and Telegram notifications.
"""

from typing import Protocol, runtime_checkable

from propjournal.accounts.transitions import AccountEvent, EventKind
from propjournal.core.utils import format_amount, format_currency


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget notification sink."""

    def notify_success(self, text: str) -> None:
        ...

    def notify_error(self, text: str) -> None:
        ...


EVENT_TITLES = {
    EventKind.RANK_UP: "Evaluation passed",
    EventKind.TARGET_HIT: "Profit target hit",
    EventKind.BREACH: "Account breached",
    EventKind.PAYOUT: "Payout goal reached",
}


def format_event_message(event: AccountEvent, currency: str = "USD") -> str:
    """
    Describe a lifecycle event in one or two lines.

    Example:
        Evaluation passed: Topstep 50K (#3)
        Balance $10,500.00 -> $11,100.00 (target $11,000.00)
    """
    before = event.stats_before
    after = event.stats_after
    title = f"{EVENT_TITLES[event.kind]}: {event.account.name} (#{event.account.id})"

    if event.kind is EventKind.BREACH:
        detail = f"limit {format_amount(before.mll, currency)}"
    elif event.kind is EventKind.PAYOUT:
        detail = f"goal {format_amount(float(event.account.payout_goal or 0), currency)}"
        return (
            f"{title}\nPnL {format_currency(before.total_pnl, currency)} -> "
            f"{format_currency(after.total_pnl, currency)} ({detail})"
        )
    else:
        detail = f"target {format_amount(before.target, currency)}"

    return (
        f"{title}\nBalance {format_amount(before.balance, currency)} -> "
        f"{format_amount(after.balance, currency)} ({detail})"
    )
