"""
Unit tests for account statistics and the consistency rule.

These run on unsaved model instances; nothing touches the database.
"""

from datetime import date

import pytest

from propjournal.accounts.consistency import (
    ConsistencySeverity,
    daily_pnl,
    evaluate_consistency,
    max_daily_profit,
)
from propjournal.accounts.stats import (
    AccountStats,
    RuleAccountStats,
    compute_account_stats,
    is_breached,
)
from propjournal.core.models import Account, AccountType, Trade

DAY_1 = date(2024, 3, 4)
DAY_2 = date(2024, 3, 5)
DAY_3 = date(2024, 3, 6)


def account(**overrides) -> Account:
    fields = dict(
        id=1,
        name="Eval",
        type=AccountType.EVALUATION,
        capital=10000.0,
        profit_target=1000.0,
        max_loss=500.0,
        consistency_rule=None,
        payout_goal=0.0,
    )
    fields.update(overrides)
    return Account(**fields)


def trade(pnl: float, day: date = DAY_1) -> Trade:
    return Trade(account_id=1, date=day, symbol="NQ", pnl=pnl)


class TestBalance:
    """Test balance and PnL computation."""

    def test_balance_is_capital_plus_pnl(self):
        """Balance adds every counted trade to the capital."""
        stats = compute_account_stats(account(), [trade(250), trade(-100), trade(400, DAY_2)])

        assert stats.total_pnl == 550
        assert stats.balance == 10550
        assert stats.trade_count == 3

    def test_no_trades(self):
        """An account without trades sits at its capital."""
        stats = compute_account_stats(account(), [])

        assert stats.balance == 10000
        assert stats.total_pnl == 0

    def test_pending_trade_preview(self):
        """A pending trade is counted without changing the input list."""
        trades = [trade(500)]
        stats = compute_account_stats(account(), trades, pending=trade(600))

        assert stats.balance == 11100
        assert stats.trade_count == 2
        assert len(trades) == 1

    def test_missing_numbers_count_as_zero(self):
        """Unset capital and PnL values are treated as zero."""
        stats = compute_account_stats(account(capital=None), [Trade(date=DAY_1, pnl=None)])

        assert stats.balance == 0


class TestAccountTypes:
    """Test which stats each account type gets."""

    @pytest.mark.parametrize("account_type", [AccountType.LIVE, AccountType.DEMO, AccountType.BACKTESTING])
    def test_plain_accounts_have_no_rule_stats(self, account_type):
        """Live, Demo and Backtesting accounts get plain stats."""
        stats = compute_account_stats(account(type=account_type), [trade(100)])

        assert type(stats) is AccountStats
        assert not hasattr(stats, "mll")

    @pytest.mark.parametrize("account_type", [AccountType.EVALUATION, AccountType.FUNDED])
    def test_rule_accounts(self, account_type):
        """Evaluation and Funded accounts get floor and target."""
        stats = compute_account_stats(account(type=account_type), [trade(100)])

        assert isinstance(stats, RuleAccountStats)
        assert stats.mll == 9500
        assert stats.target == 11000
        assert stats.drawdown_remaining == 600
        assert stats.remaining_to_target == 900

    def test_type_given_as_string(self):
        """Rows built by hand may carry the type as its value."""
        stats = compute_account_stats(account(type="Funded"), [])

        assert isinstance(stats, RuleAccountStats)


class TestConsistencyApplicability:
    """Test when the consistency rule applies."""

    def test_no_rule_is_none(self):
        """Without a rule the result is None, even after a huge day."""
        stats = compute_account_stats(account(consistency_rule=None), [trade(5000)])

        assert stats.consistency_valid is None
        assert stats.updated_target is None

    def test_no_profit_target_is_none(self):
        """A rule without a profit target does not apply."""
        stats = compute_account_stats(account(consistency_rule=40, profit_target=0), [trade(5000)])

        assert stats.consistency_valid is None

    def test_plain_account_ignores_rule(self):
        """Live accounts never evaluate the rule."""
        assert max_daily_profit(account(type=AccountType.LIVE, consistency_rule=40)) is None

    def test_cap(self):
        """Cap is the target times the rule percentage."""
        assert max_daily_profit(account(consistency_rule=40)) == pytest.approx(400)


class TestConsistencyViolation:
    """Test the violation and the corrected target."""

    def test_single_violating_day(self):
        """A day over the cap raises the target by the excess."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(500, DAY_1), trade(100, DAY_2)])

        assert stats.consistency_valid is False
        assert stats.consistency_severity is ConsistencySeverity.VIOLATION
        assert stats.consistency.failing_day == DAY_1
        assert stats.updated_target == pytest.approx(11100)
        assert stats.updated_remaining_to_target == pytest.approx(500)

    def test_every_violating_day_adds_its_excess(self):
        """Excess of all violating days is summed."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(500, DAY_1), trade(450, DAY_2), trade(-50, DAY_3)])

        assert stats.consistency_valid is False
        assert stats.consistency.excess == pytest.approx(150)
        assert stats.updated_target == pytest.approx(11150)
        assert stats.updated_target > stats.target

    def test_big_day_with_low_lifetime_profit_is_valid(self):
        """A big day does not violate while total profit stays under the cap."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(500, DAY_1), trade(-200, DAY_2)])

        assert stats.consistency_valid is True
        assert stats.updated_target is None

    def test_trades_on_same_day_are_summed(self):
        """Several trades on one day form one daily total."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(250, DAY_1), trade(200, DAY_1)])

        assert stats.consistency_valid is False
        assert stats.updated_target == pytest.approx(11050)


class TestConsistencyCaution:
    """Test the advisory caution level."""

    def test_caution_keeps_rule_valid(self):
        """Above 80% of the cap is a caution, not a violation."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(350)])

        assert stats.consistency_valid is True
        assert stats.consistency_severity is ConsistencySeverity.CAUTION

    def test_below_caution(self):
        """Small days have no severity."""
        acc = account(consistency_rule=40)
        stats = compute_account_stats(acc, [trade(100), trade(100, DAY_2)])

        assert stats.consistency_valid is True
        assert stats.consistency_severity is None

    def test_custom_caution_ratio(self):
        """The caution ratio is configurable."""
        acc = account(consistency_rule=40)
        result = evaluate_consistency(acc, [trade(250)], balance=10250, target=11000, caution_ratio=0.5)

        assert result.severity is ConsistencySeverity.CAUTION


class TestDailyPnl:
    """Test per-day aggregation."""

    def test_days_sorted(self):
        days = daily_pnl([trade(10, DAY_2), trade(5, DAY_1), trade(-3, DAY_2)])

        assert list(days) == [DAY_1, DAY_2]
        assert days[DAY_2] == 7


class TestBreachedView:
    """Test the breached flag shown in account lists."""

    def test_below_floor(self):
        acc = account()
        assert is_breached(acc, compute_account_stats(acc, [trade(-600)])) is True

    def test_breach_report_on_file(self):
        acc = account(breach_report="Overtraded the open")
        assert is_breached(acc, compute_account_stats(acc, [])) is True

    def test_no_floor_never_breached(self):
        acc = account(max_loss=0)
        assert is_breached(acc, compute_account_stats(acc, [trade(-600)])) is False

    def test_plain_account(self):
        acc = account(type=AccountType.LIVE)
        assert is_breached(acc, compute_account_stats(acc, [trade(-9000)])) is False
