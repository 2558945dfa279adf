"""
Account lifecycle transitions.

Compares an account's stats before and after a trade and classifies the
crossing, if any: passed evaluation, hit a funded target, breached the
loss limit, or reached the payout goal.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Set

from propjournal.accounts.stats import RuleAccountStats, Stats
from propjournal.core.models import Account, AccountType, account_type_of

logger = logging.getLogger(__name__)


class EventBucket(IntEnum):
    """Resolution queues, in the order they are presented."""
    CELEBRATION = 0
    BREACH = 1
    PAYOUT = 2


class EventKind(str, Enum):
    """Kind of lifecycle transition."""
    RANK_UP = "RANK_UP"
    TARGET_HIT = "TARGET_HIT"
    BREACH = "BREACH"
    PAYOUT = "PAYOUT"

    @property
    def bucket(self) -> EventBucket:
        if self in (EventKind.RANK_UP, EventKind.TARGET_HIT):
            return EventBucket.CELEBRATION
        if self is EventKind.BREACH:
            return EventBucket.BREACH
        return EventBucket.PAYOUT


@dataclass(frozen=True)
class AccountEvent:
    """A transition detected while committing one trade."""

    kind: EventKind
    account: Account
    stats_before: RuleAccountStats
    stats_after: RuleAccountStats

    @property
    def account_id(self) -> int:
        return self.account.id

    def __str__(self) -> str:
        return f"{self.kind.value} on {self.account.name} (#{self.account.id})"


def detect_transition(account, before: Stats, after: Stats) -> Optional[AccountEvent]:
    """
    Classify the transition between two stats snapshots.

    At most one event is returned; the first matching rule wins:
        1. RANK_UP (Evaluation) / TARGET_HIT (Funded): balance crosses
           the target from below
        2. BREACH: balance crosses the max loss floor from above
           (accounts without a max loss never breach)
        3. PAYOUT (Funded): total PnL crosses the payout goal from below

    Only Evaluation and Funded accounts can transition.
    """
    if not isinstance(before, RuleAccountStats) or not isinstance(after, RuleAccountStats):
        return None

    account_type = account_type_of(account)
    profit_target = float(account.profit_target or 0)
    payout_goal = float(account.payout_goal or 0)
    max_loss = float(account.max_loss or 0)

    def event(kind: EventKind) -> AccountEvent:
        return AccountEvent(kind=kind, account=account, stats_before=before, stats_after=after)

    # 1. Target
    if profit_target > 0 and before.balance < before.target <= after.balance:
        if account_type is AccountType.EVALUATION:
            return event(EventKind.RANK_UP)
        if account_type is AccountType.FUNDED:
            return event(EventKind.TARGET_HIT)

    # 2. Breach
    if max_loss > 0 and before.balance > before.mll >= after.balance:
        return event(EventKind.BREACH)

    # 3. Payout goal
    if (
        account_type is AccountType.FUNDED
        and payout_goal > 0
        and before.total_pnl < payout_goal <= after.total_pnl
    ):
        return event(EventKind.PAYOUT)

    return None


class TransitionScan:
    """
    Transition detection for one commit.

    Every account is analyzed at most once per commit, however many
    times it is reached through direct trades or copy groups. Events
    are kept in detection order.
    """

    def __init__(self):
        self.visited: Set[int] = set()
        self.events: List[AccountEvent] = []

    def has_visited(self, account_id: int) -> bool:
        return account_id in self.visited

    def exclude(self, account_id: int) -> None:
        """Mark an account as done without analyzing it."""
        self.visited.add(account_id)

    def analyze(self, account, before: Stats, after: Stats) -> Optional[AccountEvent]:
        if account.id in self.visited:
            logger.debug(f"Account {account.id} already analyzed in this commit")
            return None

        self.visited.add(account.id)

        detected = detect_transition(account, before, after)

        logger.debug(
            f"Analyzed {account.name} ({account.id}): "
            f"balance {before.balance:.2f} -> {after.balance:.2f}, "
            f"event={detected.kind.value if detected else None}"
        )

        if detected:
            logger.info(f"Detected {detected}")
            self.events.append(detected)

        return detected
