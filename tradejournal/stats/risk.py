"""Dynamic risk calculations.

A calendar risks ``risk_per_trade`` percent of its account value per trade.
With dynamic risk enabled, once cumulative profit reaches
``profit_threshold_percentage`` of the starting balance the risk steps up to
``increased_risk_percentage``. Amounts are derived from risk and R:R.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional


@dataclass
class DynamicRiskSettings:
    """Risk settings of a calendar."""

    account_balance: float = 0.0
    risk_per_trade: Optional[float] = None
    dynamic_risk_enabled: bool = False
    increased_risk_percentage: Optional[float] = None
    profit_threshold_percentage: Optional[float] = None

    @classmethod
    def from_calendar(cls, calendar) -> "DynamicRiskSettings":
        return cls(
            account_balance=calendar.account_balance or 0.0,
            risk_per_trade=calendar.risk_per_trade,
            dynamic_risk_enabled=bool(calendar.dynamic_risk_enabled),
            increased_risk_percentage=calendar.increased_risk_percentage,
            profit_threshold_percentage=calendar.profit_threshold_percentage,
        )

    @property
    def dynamic_configured(self) -> bool:
        return bool(
            self.dynamic_risk_enabled
            and self.increased_risk_percentage
            and self.profit_threshold_percentage
            and self.account_balance > 0
        )


@dataclass
class DynamicRiskStatus:
    is_active: bool
    current_risk_percentage: float
    base_risk_percentage: float
    profit_percentage: float
    threshold_met: bool


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return math.floor(value + 0.5)


def _start_of_day(value) -> datetime:
    if isinstance(value, datetime):
        return datetime.combine(value.date(), datetime.min.time())
    return datetime.combine(value, datetime.min.time())


def cumulative_pnl_to_date(target_date, trades: Iterable) -> float:
    """P&L of every trade dated strictly before the day of ``target_date``."""
    day_start = _start_of_day(target_date)
    return sum(t.amount for t in trades if _start_of_day(t.trade_date) < day_start)


def risk_percentage_for_pnl(settings: DynamicRiskSettings, cumulative_pnl: float) -> float:
    """Risk percentage once the account has made ``cumulative_pnl``.

    The increased risk applies from the profit threshold (percent of the
    starting balance) upwards.
    """
    if not settings.risk_per_trade:
        return 0.0
    if not settings.dynamic_configured:
        return settings.risk_per_trade

    if cumulative_pnl / settings.account_balance * 100 >= settings.profit_threshold_percentage:
        return settings.increased_risk_percentage
    return settings.risk_per_trade


def effective_risk_percentage(target_date, trades: Iterable, settings: DynamicRiskSettings) -> float:
    """Risk percentage that applies to trades taken on ``target_date``."""
    if not settings.dynamic_configured:
        return risk_percentage_for_pnl(settings, 0.0)
    return risk_percentage_for_pnl(settings, cumulative_pnl_to_date(target_date, trades))


def current_effective_risk_percentage(trades: list, settings: DynamicRiskSettings) -> float:
    """Risk percentage for the day after the latest trade."""
    trades = list(trades)
    if not trades:
        return settings.risk_per_trade or 0.0
    latest = max(t.trade_date for t in trades)
    return effective_risk_percentage(latest + timedelta(days=1), trades, settings)


def current_total_value(account_balance: float, trades: Iterable) -> float:
    return account_balance + sum(t.amount for t in trades)


def percentage_of_current_value(amount: float, account_balance: float, trades: Iterable) -> float:
    value = current_total_value(account_balance, trades)
    return amount / value * 100 if value > 0 else 0.0


def percentage_of_value_at_date(amount: float, account_balance: float, trades: Iterable, before) -> float:
    """``amount`` as a percentage of the account value just before ``before``."""
    if isinstance(before, date) and not isinstance(before, datetime):
        before = _start_of_day(before)
    value = current_total_value(account_balance, [t for t in trades if t.trade_date < before])
    return amount / value * 100 if value > 0 else 0.0


def risk_amount(risk_percentage: float, account_balance: float, cumulative_pnl: float = 0.0) -> float:
    return (account_balance + cumulative_pnl) * risk_percentage / 100


def trade_amount(
    trade_type: str,
    risk_to_reward: float,
    target_date,
    trades: list,
    settings: DynamicRiskSettings,
) -> int:
    """P&L of a trade derived from the risk in force on ``target_date``."""
    if trade_type == "breakeven":
        return 0

    risk_pct = effective_risk_percentage(target_date, trades, settings)
    cumulative = cumulative_pnl_to_date(target_date, trades)
    risk = risk_amount(risk_pct, settings.account_balance, cumulative)

    if trade_type == "win":
        return round_half_up(risk * risk_to_reward)
    return -round_half_up(risk)


def normalize_trade_amount(trade, trades: list, settings: DynamicRiskSettings) -> float:
    """Absolute amount rescaled to the base risk, removing the dynamic risk boost."""
    if not trade.risk_to_reward or trade.partials_taken or trade.trade_type == "breakeven":
        return abs(trade.amount)

    effective = effective_risk_percentage(trade.trade_date, trades, settings)
    if effective == 0:
        return abs(trade.amount)
    base = settings.risk_per_trade or 1
    return abs(trade.amount) * base / effective


def is_dynamic_risk_active(trades: list, settings: DynamicRiskSettings) -> bool:
    if not settings.dynamic_configured:
        return False
    return current_effective_risk_percentage(trades, settings) == settings.increased_risk_percentage


def effective_max_daily_drawdown(max_daily_drawdown: float, trades: list, settings: DynamicRiskSettings) -> float:
    """Daily drawdown limit, scaled up by the risk ratio while dynamic risk is active."""
    if not is_dynamic_risk_active(trades, settings):
        return max_daily_drawdown
    ratio = settings.increased_risk_percentage / (settings.risk_per_trade or 1)
    return max_daily_drawdown * ratio


def dynamic_risk_status(trades: list, settings: DynamicRiskSettings) -> DynamicRiskStatus:
    trades = list(trades)
    total = sum(t.amount for t in trades)
    profit_pct = total / settings.account_balance * 100 if settings.account_balance > 0 else 0.0
    return DynamicRiskStatus(
        is_active=is_dynamic_risk_active(trades, settings),
        current_risk_percentage=current_effective_risk_percentage(trades, settings),
        base_risk_percentage=settings.risk_per_trade or 0.0,
        profit_percentage=profit_pct,
        threshold_met=profit_pct >= (settings.profit_threshold_percentage or 0),
    )
