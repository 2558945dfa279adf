"""
Copy trade replication.

Mirrors a leader's newly recorded trade into every follower of the
leader's active copy groups, scaled by each member's risk multiplier.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from propjournal.accounts.transitions import TransitionScan
from propjournal.core.models import CopyMember, Trade
from propjournal.core.store import StoreError, TradeStore
from propjournal.notify.messages import Notifier

logger = logging.getLogger(__name__)

# Columns a follower trade never inherits from the leader
_OWN_COLUMNS = frozenset({"id", "account_id", "pnl", "risk_percent", "source_trade_id", "created_at"})


@dataclass(frozen=True)
class ReplicationFailure:
    """A follower that did not receive its copy."""

    follower_account_id: Optional[int]
    group_id: Optional[int]
    error: str


@dataclass
class ReplicationReport:
    """Follower trades written for one leader trade."""

    trades: List[Trade] = field(default_factory=list)
    failures: List[ReplicationFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


def mirror_trade(leader_trade: Trade, member: CopyMember, default_multiplier: float = 1.0) -> Trade:
    """
    Build a follower's copy of a leader trade.

    PnL and risk are scaled by the member's multiplier; every other
    descriptive field is copied verbatim. The copy has no id of its own
    until it is stored.
    """
    multiplier = member.risk_multiplier
    if multiplier is None:
        multiplier = default_multiplier

    inherited = {
        column.name: getattr(leader_trade, column.name)
        for column in Trade.__table__.columns
        if column.name not in _OWN_COLUMNS
    }

    risk_percent = leader_trade.risk_percent
    if risk_percent is not None:
        risk_percent = risk_percent * multiplier

    return Trade(
        **inherited,
        account_id=member.follower_account_id,
        pnl=leader_trade.pnl * multiplier,
        risk_percent=risk_percent,
        source_trade_id=leader_trade.id,
    )


class CopyReplicationEngine:
    """
    Fans leader trades out to copy followers.

    Each follower trade is recorded through the owning pipeline so the
    follower is analyzed for transitions with the commit's shared scan.
    Groups and members are processed strictly in id order.
    """

    def __init__(self, store: TradeStore, pipeline):
        self.store = store
        self.pipeline = pipeline

    @property
    def notifier(self) -> Notifier:
        return self.pipeline.notifier

    def replicate(self, leader_account_id: int, leader_trade: Trade, scan: TransitionScan) -> ReplicationReport:
        """
        Copy a leader trade to all active followers.

        A failing follower is reported and excluded from detection; the
        remaining followers are still processed.
        """
        report = ReplicationReport()

        try:
            groups = self.store.list_active_copy_groups(leader_account_id)
        except StoreError as e:
            message = f"Copy groups for account {leader_account_id} could not be loaded: {e}"
            self.notifier.notify_error(message)
            report.failures.append(ReplicationFailure(None, None, str(e)))
            return report

        if not groups:
            return report

        logger.info(f"Found {len(groups)} active copy group(s) for leader {leader_account_id}")

        default_multiplier = self.store.config.default_risk_multiplier

        for group in groups:
            for member in group.members:
                follower_id = member.follower_account_id

                if follower_id == leader_account_id:
                    logger.warning(f"Copy group {group.id} lists its leader as follower, skipping")
                    continue

                try:
                    follower = self.store.get_account(follower_id)
                    if follower is None:
                        raise StoreError(f"Account {follower_id} not found")

                    follower_trade = mirror_trade(leader_trade, member, default_multiplier)
                    saved = self.pipeline.record_trade(follower, follower_trade, scan)

                except StoreError as e:
                    scan.exclude(follower_id)
                    report.failures.append(ReplicationFailure(follower_id, group.id, str(e)))
                    self.notifier.notify_error(f"Copy to account {follower_id} failed: {e}")
                    continue

                logger.info(
                    f"Copied trade {leader_trade.id} to {follower.name} "
                    f"(x{member.risk_multiplier}) as trade {saved.id}"
                )
                report.trades.append(saved)

        if report.trades:
            self.notifier.notify_success(f"Trade copied to {len(report.trades)} follower account(s)")

        return report
