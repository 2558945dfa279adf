"""
Trade commit module for PropJournal.

Records trades, mirrors them to copy followers and sequences the
account milestones they trigger.
"""

from propjournal.commit.pipeline import CommitResult, CommitState, TradeCommitPipeline
from propjournal.commit.replication import CopyReplicationEngine, ReplicationReport
from propjournal.commit.sequencer import (
    BreachResolution,
    CelebrationResolution,
    EventSequencer,
    PayoutResolution,
)

__all__ = [
    "TradeCommitPipeline",
    "CommitResult",
    "CommitState",
    "CopyReplicationEngine",
    "ReplicationReport",
    "EventSequencer",
    "CelebrationResolution",
    "BreachResolution",
    "PayoutResolution",
]
