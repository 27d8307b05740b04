"""Tests for tradejournal.stats.risk: dynamic risk and trade amounts."""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from tradejournal.stats.risk import (
    DynamicRiskSettings,
    cumulative_pnl_to_date,
    dynamic_risk_status,
    effective_max_daily_drawdown,
    effective_risk_percentage,
    is_dynamic_risk_active,
    normalize_trade_amount,
    percentage_of_current_value,
    percentage_of_value_at_date,
    risk_percentage_for_pnl,
    round_half_up,
    trade_amount,
)


def _trade(amount, when, trade_type=None, risk_to_reward=None, partials_taken=False):
    if trade_type is None:
        trade_type = "win" if amount > 0 else "loss" if amount < 0 else "breakeven"
    return SimpleNamespace(
        amount=amount,
        trade_type=trade_type,
        trade_date=when,
        risk_to_reward=risk_to_reward,
        partials_taken=partials_taken,
    )


@pytest.fixture
def settings():
    return DynamicRiskSettings(
        account_balance=10000.0,
        risk_per_trade=1.0,
        dynamic_risk_enabled=True,
        increased_risk_percentage=2.0,
        profit_threshold_percentage=5.0,
    )


@pytest.fixture
def trades():
    return [
        _trade(300, datetime(2025, 3, 3, 10)),
        _trade(300, datetime(2025, 3, 4, 10)),
    ]


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(-2.5) == -2


class TestEffectiveRisk:
    def test_cumulative_excludes_same_day(self, trades):
        assert cumulative_pnl_to_date(datetime(2025, 3, 4, 23), trades) == 300
        assert cumulative_pnl_to_date(date(2025, 3, 5), trades) == 600

    def test_below_threshold_uses_base(self, trades, settings):
        assert effective_risk_percentage(datetime(2025, 3, 4), trades, settings) == 1.0

    def test_threshold_reached_uses_increased(self, trades, settings):
        assert effective_risk_percentage(datetime(2025, 3, 5), trades, settings) == 2.0

    def test_disabled(self, trades, settings):
        settings.dynamic_risk_enabled = False
        assert effective_risk_percentage(datetime(2025, 3, 5), trades, settings) == 1.0

    def test_no_base_risk(self, trades):
        assert effective_risk_percentage(datetime(2025, 3, 5), trades, DynamicRiskSettings(10000.0)) == 0.0

    def test_threshold_from_cumulative_pnl(self, settings):
        assert risk_percentage_for_pnl(settings, 499.99) == 1.0
        assert risk_percentage_for_pnl(settings, 500.0) == 2.0
        assert risk_percentage_for_pnl(DynamicRiskSettings(10000.0), 500.0) == 0.0

    def test_from_calendar(self, make_calendar):
        calendar = make_calendar(
            risk_per_trade=1.0,
            dynamic_risk_enabled=True,
            increased_risk_percentage=2.0,
            profit_threshold_percentage=5.0,
        )
        settings = DynamicRiskSettings.from_calendar(calendar)
        assert settings.account_balance == 10000
        assert settings.dynamic_configured


class TestTradeAmount:
    def test_win_with_increased_risk(self, trades, settings):
        assert trade_amount("win", 2, datetime(2025, 3, 5), trades, settings) == 424

    def test_loss_with_increased_risk(self, trades, settings):
        assert trade_amount("loss", 2, datetime(2025, 3, 5), trades, settings) == -212

    def test_win_with_base_risk(self, trades, settings):
        assert trade_amount("win", 1.5, datetime(2025, 3, 4), trades, settings) == 155

    def test_breakeven(self, trades, settings):
        assert trade_amount("breakeven", 2, datetime(2025, 3, 5), trades, settings) == 0


class TestDynamicRiskStatus:
    def test_active(self, trades, settings):
        assert is_dynamic_risk_active(trades, settings)
        assert effective_max_daily_drawdown(500, trades, settings) == 1000

    def test_inactive_keeps_limit(self, trades, settings):
        settings.dynamic_risk_enabled = False
        assert not is_dynamic_risk_active(trades, settings)
        assert effective_max_daily_drawdown(500, trades, settings) == 500

    def test_status(self, trades, settings):
        status = dynamic_risk_status(trades, settings)
        assert status.is_active
        assert status.current_risk_percentage == 2.0
        assert status.base_risk_percentage == 1.0
        assert status.profit_percentage == pytest.approx(6.0)
        assert status.threshold_met


class TestNormalization:
    def test_rescales_boosted_trade(self, trades, settings):
        boosted = _trade(424, datetime(2025, 3, 5, 10), risk_to_reward=2)
        assert normalize_trade_amount(boosted, trades, settings) == pytest.approx(212)

    def test_partials_keep_amount(self, trades, settings):
        partial = _trade(424, datetime(2025, 3, 5, 10), risk_to_reward=2, partials_taken=True)
        assert normalize_trade_amount(partial, trades, settings) == 424

    def test_loss_returns_absolute(self, trades, settings):
        loss = _trade(-100, datetime(2025, 3, 4, 10), risk_to_reward=1)
        assert normalize_trade_amount(loss, trades, settings) == 100


class TestPercentages:
    def test_of_current_value(self, trades):
        assert percentage_of_current_value(106, 10000, trades) == pytest.approx(1.0)
        assert percentage_of_current_value(10, 0, []) == 0.0

    def test_of_value_at_date(self, trades):
        assert percentage_of_value_at_date(103, 10000, trades, date(2025, 3, 4)) == pytest.approx(1.0)
