"""
Shared fixtures for PropJournal tests.

Every test gets its own SQLite database under tmp_path and a clock
that moves forward one minute per call.
"""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from propjournal.commit.pipeline import TradeCommitPipeline
from propjournal.core.config import Config
from propjournal.core.models import AccountType, Trade
from propjournal.core.store import TradeStore


class FakeClock:
    """Deterministic clock, one minute per call."""

    def __init__(self, start: datetime = datetime(2024, 3, 4, 9, 0)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


class RecordingNotifier:
    """Keeps notifications for assertions."""

    def __init__(self):
        self.successes = []
        self.errors = []

    def notify_success(self, text: str) -> None:
        self.successes.append(text)

    def notify_error(self, text: str) -> None:
        self.errors.append(text)


@pytest.fixture
def config(tmp_path):
    return Config(database_path=str(tmp_path / "journal.db"))


@pytest.fixture
def store(config):
    return TradeStore(config)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def pipeline(store, notifier, clock):
    return TradeCommitPipeline(store, notifier, clock=clock)


@pytest.fixture
def make_account(store):
    """Create an account; defaults to a 10K evaluation with a 1K target."""

    def _make(**overrides):
        fields = {
            "name": "Eval 10K",
            "type": AccountType.EVALUATION,
            "capital": 10000.0,
            "profit_target": 1000.0,
            "max_loss": 500.0,
        }
        fields.update(overrides)
        return store.add_account(**fields)

    return _make


@pytest.fixture
def add_trade(store, clock):
    """Store a trade directly, bypassing the pipeline."""

    def _add(account_id, pnl, day=date(2024, 3, 4), symbol="NQ", **extra):
        trade = Trade(
            account_id=account_id,
            date=day,
            symbol=symbol,
            pnl=pnl,
            created_at=clock(),
            **extra,
        )
        return store.create_trade(trade)

    return _add


def trade_form(account_id, pnl, day="2024-03-04", symbol="NQ", **extra):
    """Trade submission as the form sends it."""
    data = {"account_id": account_id, "date": day, "symbol": symbol, "pnl": pnl}
    data.update(extra)
    return data


@pytest.fixture
def form():
    return trade_form
