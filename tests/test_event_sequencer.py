"""
Tests for the event resolution queue.
"""

from datetime import date

import pytest

from propjournal.accounts.stats import compute_account_stats
from propjournal.accounts.transitions import EventBucket, EventKind, detect_transition
from propjournal.commit.sequencer import (
    BreachResolution,
    CelebrationResolution,
    EventSequencer,
    PayoutResolution,
)
from propjournal.core.models import AccountType, Trade
from propjournal.core.store import StoreError


def event_for(account, history, new_pnl):
    """Detect the event one more trade would trigger."""
    trades = [Trade(account_id=account.id, date=date(2024, 3, 4), symbol="NQ", pnl=p) for p in history]
    pending = Trade(account_id=account.id, date=date(2024, 3, 4), symbol="NQ", pnl=new_pnl)
    before = compute_account_stats(account, trades)
    after = compute_account_stats(account, trades, pending=pending)
    event = detect_transition(account, before, after)
    assert event is not None
    return event


@pytest.fixture
def rank_up(make_account):
    return event_for(make_account(name="Eval"), [500], 600)


@pytest.fixture
def breach(make_account):
    return event_for(make_account(name="Blown"), [-400], -200)


@pytest.fixture
def payout(make_account):
    acc = make_account(name="Funded", type=AccountType.FUNDED, profit_target=0.0, payout_goal=800.0)
    return event_for(acc, [500], 400)


class TestOrdering:
    """Test bucket order and the queue pointer."""

    def test_buckets_in_fixed_order(self, store, notifier, clock, rank_up, breach, payout):
        """Celebrations, then breaches, then payouts, whatever the detection order."""
        sequencer = EventSequencer([payout, breach, rank_up], store, notifier, clock=clock)

        assert sequencer.pending == [rank_up, breach, payout]
        assert sequencer.current is rank_up
        assert sequencer.position.bucket is EventBucket.CELEBRATION

        sequencer.skip()
        assert sequencer.current is breach
        assert sequencer.position.bucket is EventBucket.BREACH

        sequencer.skip()
        assert sequencer.current is payout

        sequencer.skip()
        assert sequencer.finished
        assert sequencer.current is None
        assert sequencer.pending == []

    def test_position_within_bucket(self, store, notifier, clock, make_account):
        first = event_for(make_account(name="A"), [500], 600)
        second = event_for(make_account(name="B"), [900], 200)
        sequencer = EventSequencer([first, second], store, notifier, clock=clock)

        position = sequencer.position
        assert (position.index, position.total) == (0, 2)
        assert not position.is_last_in_bucket

        sequencer.skip()
        assert sequencer.position.is_last_in_bucket

    def test_empty_queue_finishes_at_once(self, store, notifier):
        calls = []
        sequencer = EventSequencer([], store, notifier, on_finished=lambda: calls.append(1))

        assert sequencer.finished
        assert calls == [1]

    def test_finish_callback_runs_once(self, store, notifier, clock, rank_up):
        calls = []
        sequencer = EventSequencer([rank_up], store, notifier, clock=clock, on_finished=lambda: calls.append(1))

        sequencer.skip()
        assert calls == [1]

        with pytest.raises(RuntimeError):
            sequencer.skip()
        assert calls == [1]


class TestCelebration:
    """Test applying new funded parameters."""

    def test_rank_up(self, store, notifier, clock, rank_up):
        sequencer = EventSequencer([rank_up], store, notifier, clock=clock)

        outcome = sequencer.resolve(CelebrationResolution(
            capital=50000.0, max_loss=2500.0, consistency_rule=40.0, payout_goal=3000.0
        ))

        account = store.get_account(rank_up.account_id)
        assert outcome.applied is True
        assert account.type is AccountType.FUNDED
        assert account.is_ranked_up is True
        assert account.capital == 50000
        assert account.max_loss == 2500
        assert account.consistency_rule == 40
        assert account.profit_target == 0
        assert account.payout_goal == 3000
        assert account.prev_reset_date is None
        assert account.reset_date == clock.now
        assert notifier.successes == ["Eval updated"]

    def test_blank_capital_keeps_current(self, store, notifier, clock, rank_up):
        sequencer = EventSequencer([rank_up], store, notifier, clock=clock)

        sequencer.resolve(CelebrationResolution())

        account = store.get_account(rank_up.account_id)
        assert account.capital == 10000
        assert account.max_loss == 0
        assert account.consistency_rule is None
        assert account.payout_goal == 0

    def test_target_hit_sets_new_target(self, store, notifier, clock, make_account):
        acc = make_account(name="Funded", type=AccountType.FUNDED, payout_goal=2000.0)
        event = event_for(acc, [900], 200)
        assert event.kind is EventKind.TARGET_HIT

        EventSequencer([event], store, notifier, clock=clock).resolve(
            CelebrationResolution(max_loss=500.0, profit_target=1500.0)
        )

        account = store.get_account(acc.id)
        assert account.profit_target == 1500
        assert account.payout_goal == 2000
        assert account.type is AccountType.FUNDED

    def test_wrong_resolution_type(self, store, notifier, clock, rank_up):
        """A breach report cannot resolve a celebration; the queue stays put."""
        sequencer = EventSequencer([rank_up], store, notifier, clock=clock)

        with pytest.raises(ValueError):
            sequencer.resolve(BreachResolution(report="oops"))

        assert sequencer.current is rank_up
        assert store.get_account(rank_up.account_id).type is AccountType.EVALUATION


class TestBreachAndPayout:
    """Test breach reports and payouts."""

    def test_breach_report_saved(self, store, notifier, clock, breach):
        sequencer = EventSequencer([breach], store, notifier, clock=clock)

        outcome = sequencer.resolve(BreachResolution(report="  Revenge traded after the open  "))

        assert outcome.applied is True
        assert store.get_account(breach.account_id).breach_report == "Revenge traded after the open"

    def test_blank_report_is_a_skip(self, store, notifier, clock, breach):
        sequencer = EventSequencer([breach], store, notifier, clock=clock)

        outcome = sequencer.resolve(BreachResolution(report="   "))

        assert outcome.skipped is True
        assert store.get_account(breach.account_id).breach_report is None

    def test_payout_starts_new_cycle(self, store, notifier, clock, payout):
        sequencer = EventSequencer([payout], store, notifier, clock=clock)

        sequencer.resolve(PayoutResolution(payout_goal=1000.0))

        account = store.get_account(payout.account_id)
        assert account.payout_goal == 1000
        assert account.capital == 10000
        assert account.reset_date == clock.now

    def test_payout_with_new_capital(self, store, notifier, clock, payout):
        sequencer = EventSequencer([payout], store, notifier, clock=clock)

        sequencer.resolve(PayoutResolution(capital=9000.0))

        account = store.get_account(payout.account_id)
        assert account.capital == 9000
        assert account.payout_goal == 800


class TestFailures:
    """Test failed account updates."""

    def test_failed_update_advances(self, store, notifier, clock, rank_up, breach, monkeypatch):
        """A failed update is reported and the next event comes up."""

        def broken_update(account_id, **changes):
            raise StoreError("database is locked")

        monkeypatch.setattr(store, "update_account", broken_update)
        sequencer = EventSequencer([rank_up, breach], store, notifier, clock=clock)

        outcome = sequencer.resolve(CelebrationResolution())

        assert outcome.applied is False
        assert outcome.error == "database is locked"
        assert sequencer.current is breach
        assert notifier.errors == ["RANK_UP for Eval not applied: database is locked"]


class TestRun:
    """Test driving the queue through a surface."""

    def test_surface_skipping_everything(self, store, notifier, clock, rank_up, breach):
        class SkipAll:
            def __init__(self):
                self.seen = []

            def present(self, event, position):
                self.seen.append((event.kind, position.bucket))
                return None

        surface = SkipAll()
        outcomes = EventSequencer([breach, rank_up], store, notifier, clock=clock).run(surface)

        assert surface.seen == [
            (EventKind.RANK_UP, EventBucket.CELEBRATION),
            (EventKind.BREACH, EventBucket.BREACH),
        ]
        assert all(o.skipped for o in outcomes)
        assert store.get_account(rank_up.account_id).type is AccountType.EVALUATION

    def test_abandon(self, store, notifier, clock, rank_up, breach):
        sequencer = EventSequencer([rank_up, breach], store, notifier, clock=clock)
        sequencer.skip()

        skipped = sequencer.abandon()

        assert [o.event for o in skipped] == [breach]
        assert len(sequencer.outcomes) == 2
        assert sequencer.finished
