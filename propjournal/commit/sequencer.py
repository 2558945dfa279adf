"""
Event resolution queue.

Events detected during one commit are resolved one at a time in fixed
bucket order: celebrations first, then breaches, then payouts. The
position in the queue is an explicit (bucket, item) pointer; resolving
or skipping an event just advances it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Tuple, Union

from propjournal.accounts.transitions import AccountEvent, EventBucket, EventKind
from propjournal.core.models import Account, AccountType
from propjournal.core.store import StoreError, TradeStore
from propjournal.core.utils import utcnow
from propjournal.notify.messages import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CelebrationResolution:
    """
    New funded parameters after a RANK_UP or TARGET_HIT.

    capital keeps the current capital when omitted. A rank-up sets the
    payout goal and clears the profit target; a target hit sets a fresh
    profit target.
    """

    capital: Optional[float] = None
    max_loss: float = 0.0
    consistency_rule: Optional[float] = None
    payout_goal: Optional[float] = None
    profit_target: Optional[float] = None


@dataclass(frozen=True)
class BreachResolution:
    """Post-mortem written by the user for a breached account."""

    report: str


@dataclass(frozen=True)
class PayoutResolution:
    """
    Parameters after a payout.

    capital defaults to the account's current capital and payout_goal
    stays unchanged when omitted.
    """

    payout_goal: Optional[float] = None
    capital: Optional[float] = None


Resolution = Union[CelebrationResolution, BreachResolution, PayoutResolution]

RESOLUTION_BUCKETS = {
    CelebrationResolution: EventBucket.CELEBRATION,
    BreachResolution: EventBucket.BREACH,
    PayoutResolution: EventBucket.PAYOUT,
}


@dataclass(frozen=True)
class QueuePosition:
    """Where the current event sits in its bucket."""

    bucket: EventBucket
    index: int
    total: int

    @property
    def is_last_in_bucket(self) -> bool:
        return self.index == self.total - 1


@dataclass(frozen=True)
class ResolutionOutcome:
    """What happened to one event."""

    event: AccountEvent
    applied: bool
    skipped: bool = False
    error: Optional[str] = None
    account: Optional[Account] = None


class InteractionSurface(Protocol):
    """Presents one event and returns the user's resolution, or None to skip."""

    def present(self, event: AccountEvent, position: QueuePosition) -> Optional[Resolution]:
        ...


class EventSequencer:
    """
    Resolve-one-at-a-time queue for a commit's events.

    Empty buckets are dropped up front, so the pointer always rests on
    a real event until the queue is finished.
    """

    def __init__(
        self,
        events: List[AccountEvent],
        store: TradeStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
        on_finished: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self._on_finished = on_finished

        grouped: Dict[EventBucket, List[AccountEvent]] = {bucket: [] for bucket in EventBucket}
        for event in events:
            grouped[event.kind.bucket].append(event)

        self.buckets: List[Tuple[EventBucket, List[AccountEvent]]] = [
            (bucket, grouped[bucket]) for bucket in EventBucket if grouped[bucket]
        ]
        self.bucket_index = 0
        self.item_index = 0
        self.outcomes: List[ResolutionOutcome] = []
        self._finished_notified = False

        if self.finished:
            self._finish()

    @property
    def finished(self) -> bool:
        return self.bucket_index >= len(self.buckets)

    @property
    def current(self) -> Optional[AccountEvent]:
        if self.finished:
            return None
        return self.buckets[self.bucket_index][1][self.item_index]

    @property
    def position(self) -> Optional[QueuePosition]:
        if self.finished:
            return None
        bucket, events = self.buckets[self.bucket_index]
        return QueuePosition(bucket=bucket, index=self.item_index, total=len(events))

    @property
    def pending(self) -> List[AccountEvent]:
        """Events not yet resolved, in presentation order."""
        if self.finished:
            return []
        remaining = list(self.buckets[self.bucket_index][1][self.item_index:])
        for _, events in self.buckets[self.bucket_index + 1:]:
            remaining.extend(events)
        return remaining

    def _advance(self) -> None:
        self.item_index += 1
        if self.item_index >= len(self.buckets[self.bucket_index][1]):
            self.bucket_index += 1
            self.item_index = 0

        if self.finished:
            self._finish()

    def _finish(self) -> None:
        if self._finished_notified:
            return
        self._finished_notified = True
        logger.debug(f"Resolution queue finished with {len(self.outcomes)} outcome(s)")
        if self._on_finished:
            self._on_finished()

    def skip(self) -> ResolutionOutcome:
        """Leave the current event's account untouched."""
        event = self._require_current()
        outcome = ResolutionOutcome(event=event, applied=False, skipped=True)
        logger.info(f"Skipped {event}")
        self.outcomes.append(outcome)
        self._advance()
        return outcome

    def abandon(self) -> List[ResolutionOutcome]:
        """Skip every remaining event."""
        skipped = []
        while not self.finished:
            skipped.append(self.skip())
        return skipped

    def resolve(self, resolution: Optional[Resolution]) -> ResolutionOutcome:
        """
        Apply a resolution to the current event's account and advance.

        None skips the event. A failed account update is reported as not
        applied and the queue still advances.
        """
        event = self._require_current()

        if resolution is None:
            return self.skip()

        expected = RESOLUTION_BUCKETS.get(type(resolution))
        if expected is not event.kind.bucket:
            raise ValueError(
                f"{type(resolution).__name__} cannot resolve a {event.kind.value} event"
            )

        changes = self._changes_for(event, resolution)
        if not changes:
            return self.skip()

        try:
            account = self.store.update_account(event.account_id, **changes)
        except StoreError as e:
            message = f"{event.kind.value} for {event.account.name} not applied: {e}"
            logger.error(message)
            self.notifier.notify_error(message)
            outcome = ResolutionOutcome(event=event, applied=False, error=str(e))
        else:
            self.notifier.notify_success(f"{event.account.name} updated")
            outcome = ResolutionOutcome(event=event, applied=True, account=account)

        self.outcomes.append(outcome)
        self._advance()
        return outcome

    def run(self, surface: InteractionSurface) -> List[ResolutionOutcome]:
        """Drive the queue through an interaction surface until finished."""
        while not self.finished:
            event = self.current
            self.resolve(surface.present(event, self.position))
        return self.outcomes

    def _require_current(self) -> AccountEvent:
        event = self.current
        if event is None:
            raise RuntimeError("No event left to resolve")
        return event

    def _changes_for(self, event: AccountEvent, resolution: Resolution) -> dict:
        account = event.account

        if isinstance(resolution, CelebrationResolution):
            changes = {
                "type": AccountType.FUNDED,
                "is_ranked_up": True,
                "capital": resolution.capital if resolution.capital is not None else account.capital,
                "max_loss": resolution.max_loss or 0.0,
                "consistency_rule": resolution.consistency_rule or None,
                "prev_reset_date": account.reset_date,
                "reset_date": self.clock(),
            }
            if event.kind is EventKind.RANK_UP:
                changes["profit_target"] = 0.0
                changes["payout_goal"] = resolution.payout_goal or 0.0
            else:
                changes["profit_target"] = resolution.profit_target or 0.0
                if resolution.payout_goal is not None:
                    changes["payout_goal"] = resolution.payout_goal
            return changes

        if isinstance(resolution, BreachResolution):
            report = resolution.report.strip()
            if not report:
                return {}
            return {"breach_report": report}

        changes = {
            "capital": resolution.capital if resolution.capital is not None else account.capital,
            "prev_reset_date": account.reset_date,
            "reset_date": self.clock(),
        }
        if resolution.payout_goal is not None:
            changes["payout_goal"] = resolution.payout_goal
        return changes
