"""
Trade commit pipeline.

Validates and records a trade submission, analyzes the owning account
for lifecycle transitions, fans the trade out to copy followers and
hands back one resolution queue for everything that was detected.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from propjournal.accounts.stats import compute_account_stats
from propjournal.accounts.transitions import AccountEvent, TransitionScan
from propjournal.commit.replication import CopyReplicationEngine, ReplicationReport
from propjournal.commit.sequencer import EventSequencer, InteractionSurface, ResolutionOutcome
from propjournal.core.models import Account, Trade, TradeSide
from propjournal.core.store import TRADE_COLUMNS, StoreError, TradeStore
from propjournal.core.utils import parse_amount, parse_trade_date, utcnow
from propjournal.notify.messages import Notifier

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("account_id", "date", "symbol", "pnl")

# Fields managed by the pipeline, never taken from a submission
_MANAGED_FIELDS = frozenset({"created_at", "source_trade_id"})
_AMOUNT_FIELDS = ("risk_percent", "sl_pips")

MISSING_FIELDS_MESSAGE = "Please fill in all required fields"
INVALID_FIELDS_MESSAGE = "Please fix the highlighted fields"


class CommitState(str, Enum):
    """Pipeline state. Submissions are only accepted while IDLE."""
    IDLE = "idle"
    COMMITTING = "committing"
    REPLICATING = "replicating"
    RESOLVING = "resolving"


class TradeValidationError(ValueError):
    """Trade submission is missing or has malformed fields."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("Invalid trade: " + ", ".join(f"{k} ({v})" for k, v in errors.items()))

    @property
    def summary(self) -> str:
        """User facing message; missing fields take precedence."""
        if "required" in self.errors.values():
            return MISSING_FIELDS_MESSAGE
        return INVALID_FIELDS_MESSAGE


@dataclass
class CommitResult:
    """Outcome of one trade submission."""

    success: bool
    error: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    trade: Optional[Trade] = None
    replication: Optional[ReplicationReport] = None
    sequencer: Optional[EventSequencer] = None
    events: List[AccountEvent] = field(default_factory=list)


def validate_trade_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Check and normalize a trade submission.

    Returns the trade column values. Raises TradeValidationError listing
    every missing or malformed field.
    """
    errors: Dict[str, str] = {}

    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = "required"

    values: Dict[str, Any] = {}

    for name, value in data.items():
        if name in _MANAGED_FIELDS or name == "id":
            continue
        if name not in TRADE_COLUMNS:
            logger.debug(f"Ignoring unknown trade field: {name}")
            continue
        if name in errors:
            continue

        try:
            if name == "account_id":
                values[name] = int(value)
            elif name == "date":
                values[name] = parse_trade_date(value)
            elif name == "symbol":
                values[name] = str(value).strip().upper()
            elif name == "pnl":
                values[name] = parse_amount(value)
            elif name in _AMOUNT_FIELDS:
                values[name] = parse_amount(value, default=None)
            elif name == "side":
                if isinstance(value, TradeSide):
                    values[name] = value
                else:
                    values[name] = TradeSide(str(value).upper()) if value else TradeSide.LONG
            else:
                values[name] = value
        except (TypeError, ValueError):
            errors[name] = "invalid"

    if errors:
        raise TradeValidationError(errors)

    return values


class TradeCommitPipeline:
    """
    Records trades and coordinates everything a new trade triggers.

    State machine:
        IDLE -> COMMITTING -> REPLICATING -> RESOLVING -> IDLE

    A submission made while the pipeline is not IDLE (for example a
    double-fired form) is rejected without any write. The pipeline
    returns to IDLE once the commit's resolution queue is finished or
    abandoned.
    """

    def __init__(
        self,
        store: TradeStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.state = CommitState.IDLE
        self.replicator = CopyReplicationEngine(store, self)

    def submit(self, trade_data: Mapping[str, Any], trade_id: Optional[int] = None) -> CommitResult:
        """
        Commit a trade submission.

        Args:
            trade_data: Form values (account_id, date, symbol, pnl, ...)
            trade_id: Existing trade to edit; edits skip detection and copying

        Returns:
            CommitResult, with a sequencer holding any detected events
        """
        if self.state is not CommitState.IDLE:
            logger.warning(f"Rejected trade submission while {self.state.value}")
            return CommitResult(success=False, error="A trade commit is already in progress")

        self.state = CommitState.COMMITTING
        try:
            return self._commit(trade_data, trade_id)
        except Exception:
            self.state = CommitState.IDLE
            raise

    def _fail(self, message: str, field_errors: Optional[Dict[str, str]] = None) -> CommitResult:
        self.notifier.notify_error(message)
        self.state = CommitState.IDLE
        return CommitResult(success=False, error=message, field_errors=field_errors or {})

    def _commit(self, trade_data: Mapping[str, Any], trade_id: Optional[int]) -> CommitResult:
        try:
            values = validate_trade_data(trade_data)
        except TradeValidationError as e:
            logger.info(f"Trade submission rejected: {e.errors}")
            return self._fail(e.summary, e.errors)

        if trade_id is not None:
            return self._update(trade_id, values)

        try:
            account = self.store.get_account(values["account_id"])
        except StoreError as e:
            return self._fail(f"Trade could not be saved: {e}")

        if account is None:
            return self._fail(INVALID_FIELDS_MESSAGE, {"account_id": "unknown account"})

        scan = TransitionScan()

        try:
            trade = self.record_trade(account, Trade(**values), scan)
        except StoreError as e:
            return self._fail(f"Trade could not be saved: {e}")

        self.notifier.notify_success("Trade saved successfully")

        self.state = CommitState.REPLICATING
        report = self.replicator.replicate(account.id, trade, scan)

        self.state = CommitState.RESOLVING
        sequencer = EventSequencer(
            scan.events,
            self.store,
            self.notifier,
            clock=self.clock,
            on_finished=self._resolution_finished,
        )

        return CommitResult(
            success=True,
            trade=trade,
            replication=report,
            sequencer=sequencer,
            events=list(scan.events),
        )

    def _update(self, trade_id: int, values: Dict[str, Any]) -> CommitResult:
        try:
            trade = self.store.update_trade(trade_id, **values)
        except StoreError as e:
            return self._fail(f"Trade could not be updated: {e}")

        self.notifier.notify_success("Trade updated successfully")
        self.state = CommitState.IDLE
        return CommitResult(success=True, trade=trade)

    def _resolution_finished(self) -> None:
        self.state = CommitState.IDLE

    def record_trade(self, account: Account, trade: Trade, scan: TransitionScan) -> Trade:
        """
        Store a new trade and analyze its account.

        Stats before the trade are taken from the stored trades before the
        write, stats after add the stored trade to the same snapshot.
        Raises StoreError if the trade cannot be stored.
        """
        if trade.created_at is None:
            trade.created_at = self.clock()

        caution_ratio = self.store.config.consistency_caution_ratio
        history = self.store.get_trades_for_account(account.id, since=account.reset_date)
        before = compute_account_stats(account, history, caution_ratio=caution_ratio)

        saved = self.store.create_trade(trade)

        if not scan.has_visited(account.id):
            after = compute_account_stats(account, history, pending=saved, caution_ratio=caution_ratio)
            scan.analyze(account, before, after)

        return saved

    def resolve(self, result: CommitResult, surface: InteractionSurface) -> List[ResolutionOutcome]:
        """Walk the user through a commit's events."""
        if result.sequencer is None:
            return []
        return result.sequencer.run(surface)
