"""Calendar grid aggregation.

Buckets trades into the month view of the journal: Monday-start weeks of
seven day cells, a summary per week and per month, plus a twelve-month
year overview and pandas frames for P&L curves.
"""

import calendar as pycalendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from tradejournal.stats.risk import percentage_of_value_at_date

logger = logging.getLogger(__name__)


@dataclass
class DayCell:
    """One day of the month grid."""

    date: date
    in_month: bool
    pnl: float = 0.0
    trade_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    pnl_percentage: float = 0.0


@dataclass
class WeekSummary:
    """Totals for the in-month days of a week row."""

    pnl: float = 0.0
    trade_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0
    pnl_percentage: float = 0.0


@dataclass
class WeekRow:
    start: date
    days: list[DayCell] = field(default_factory=list)
    summary: WeekSummary = field(default_factory=WeekSummary)


@dataclass
class MonthSummary:
    year: int
    month: int
    pnl: float = 0.0
    trade_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    breakeven_count: int = 0
    win_rate: float = 0.0
    best_day: Optional[date] = None
    best_day_pnl: float = 0.0
    worst_day: Optional[date] = None
    worst_day_pnl: float = 0.0
    pnl_percentage: float = 0.0


@dataclass
class MonthGrid:
    year: int
    month: int
    weeks: list[WeekRow] = field(default_factory=list)
    summary: Optional[MonthSummary] = None


def _trade_day(trade) -> date:
    value = trade.trade_date
    return value.date() if isinstance(value, datetime) else value


def _win_rate(wins: int, total: int) -> float:
    return wins / total * 100 if total else 0.0


def _pct_at(amount: float, account_balance: Optional[float], trades: list, day: date) -> float:
    if not account_balance:
        return 0.0
    return percentage_of_value_at_date(amount, account_balance, trades, day)


def _summarize_month(trades: list, year: int, month: int, account_balance: Optional[float], all_trades: list) -> MonthSummary:
    summary = MonthSummary(year=year, month=month)
    if not trades:
        return summary

    daily = defaultdict(float)
    for trade in trades:
        daily[_trade_day(trade)] += trade.amount

    summary.pnl = sum(t.amount for t in trades)
    summary.trade_count = len(trades)
    summary.win_count = sum(1 for t in trades if t.trade_type == "win")
    summary.loss_count = sum(1 for t in trades if t.trade_type == "loss")
    summary.breakeven_count = sum(1 for t in trades if t.trade_type == "breakeven")
    summary.win_rate = _win_rate(summary.win_count, summary.trade_count)

    summary.best_day, summary.best_day_pnl = max(daily.items(), key=lambda item: item[1])
    summary.worst_day, summary.worst_day_pnl = min(daily.items(), key=lambda item: item[1])
    summary.pnl_percentage = _pct_at(summary.pnl, account_balance, all_trades, date(year, month, 1))
    return summary


def build_month_grid(
    trades: Iterable,
    year: int,
    month: int,
    account_balance: Optional[float] = None,
) -> MonthGrid:
    """Build the month view for ``year``/``month``.

    Weeks run Monday to Sunday and cover every day of the month; padding
    days from neighbouring months have ``in_month=False`` but still carry
    their own trades. Week summaries only count in-month days. Percentages
    are relative to the account value at the start of the day, week or
    month when ``account_balance`` is given.
    """
    all_trades = list(trades)
    by_day = defaultdict(list)
    for trade in all_trades:
        by_day[_trade_day(trade)].append(trade)

    first = date(year, month, 1)
    last = date(year, month, pycalendar.monthrange(year, month)[1])
    cursor = first - timedelta(days=first.weekday())

    grid = MonthGrid(year=year, month=month)
    while cursor <= last:
        row = WeekRow(start=cursor)
        week_trades = []
        for offset in range(7):
            day = cursor + timedelta(days=offset)
            day_trades = by_day.get(day, [])
            pnl = sum(t.amount for t in day_trades)
            in_month = day.month == month and day.year == year
            row.days.append(DayCell(
                date=day,
                in_month=in_month,
                pnl=pnl,
                trade_count=len(day_trades),
                win_count=sum(1 for t in day_trades if t.trade_type == "win"),
                loss_count=sum(1 for t in day_trades if t.trade_type == "loss"),
                pnl_percentage=_pct_at(pnl, account_balance, all_trades, day),
            ))
            if in_month:
                week_trades.extend(day_trades)

        week_pnl = sum(t.amount for t in week_trades)
        wins = sum(1 for t in week_trades if t.trade_type == "win")
        row.summary = WeekSummary(
            pnl=week_pnl,
            trade_count=len(week_trades),
            win_count=wins,
            loss_count=sum(1 for t in week_trades if t.trade_type == "loss"),
            win_rate=_win_rate(wins, len(week_trades)),
            pnl_percentage=_pct_at(week_pnl, account_balance, all_trades, cursor),
        )
        grid.weeks.append(row)
        cursor += timedelta(days=7)

    month_trades = [t for t in all_trades if first <= _trade_day(t) <= last]
    grid.summary = _summarize_month(month_trades, year, month, account_balance, all_trades)
    return grid


def build_year_summary(trades: Iterable, year: int, account_balance: Optional[float] = None) -> list[MonthSummary]:
    """Twelve month summaries for ``year``."""
    all_trades = list(trades)
    by_month = defaultdict(list)
    for trade in all_trades:
        day = _trade_day(trade)
        if day.year == year:
            by_month[day.month].append(trade)

    return [
        _summarize_month(by_month.get(month, []), year, month, account_balance, all_trades)
        for month in range(1, 13)
    ]


def daily_pnl_frame(trades: Iterable) -> pd.DataFrame:
    """Daily P&L, trade count and cumulative P&L indexed by date."""
    records = [{"date": _trade_day(t), "amount": t.amount} for t in trades]
    if not records:
        return pd.DataFrame(columns=["pnl", "trade_count", "cumulative_pnl"])

    df = pd.DataFrame(records)
    daily = df.groupby("date")["amount"].agg(["sum", "count"]).sort_index()
    daily.columns = ["pnl", "trade_count"]
    daily["cumulative_pnl"] = daily["pnl"].cumsum()
    return daily


def cumulative_pnl_series(trades: Iterable, account_balance: float = 0.0) -> pd.Series:
    """Account balance at the close of each trading day."""
    daily = daily_pnl_frame(trades)
    if daily.empty:
        return pd.Series(dtype=float, name="balance")
    balance = daily["cumulative_pnl"].astype(float) + float(account_balance or 0.0)
    return pd.Series(np.round(balance.values, 2), index=daily.index, name="balance")
