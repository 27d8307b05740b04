"""Cached calendar statistics.

Computes the statistics block stored on each calendar row (win rate,
profit factor, period P&L, target progress, drawdown) from its trades,
and copies it onto the row whenever trades change.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from tradejournal.db.queries import calendar_trades
from tradejournal.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CalendarStats:
    """Statistics block cached on a calendar."""

    total_trades: int = 0
    win_count: int = 0
    loss_count: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    target_progress: float = 0.0
    pnl_performance: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    current_balance: float = 0.0
    drawdown_start_date: Optional[datetime] = None
    drawdown_end_date: Optional[datetime] = None
    drawdown_recovery_needed: float = 0.0
    drawdown_duration: int = 0
    weekly_pnl: float = 0.0
    monthly_pnl: float = 0.0
    yearly_pnl: float = 0.0
    weekly_pnl_percentage: float = 0.0
    monthly_pnl_percentage: float = 0.0
    yearly_pnl_percentage: float = 0.0
    weekly_progress: float = 0.0
    monthly_progress: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


STAT_FIELDS = tuple(CalendarStats.__dataclass_fields__)


def _cap(value: float, cap: float) -> float:
    return max(min(value, cap), -cap)


def _pct(part: float, whole: Optional[float], cap: float) -> float:
    if not whole or whole <= 0:
        return 0.0
    return _cap(part / whole * 100, cap)


def _sum_since(trades: list, start: date) -> float:
    start_dt = datetime.combine(start, datetime.min.time())
    return sum(t.amount for t in trades if t.trade_date >= start_dt)


def _balance_drawdown(trades: list, account_balance: float) -> dict:
    """Worst decline of the account balance, seeded with the starting balance."""
    balance = account_balance or 0.0
    peak = balance
    peak_index = None
    worst = {"max_drawdown": 0.0, "start": None, "end": None, "duration": 0}

    for index, trade in enumerate(trades):
        balance += trade.amount
        if balance > peak:
            peak = balance
            peak_index = index
            continue
        if peak <= 0:
            continue
        drawdown = (peak - balance) / peak * 100
        if drawdown > worst["max_drawdown"]:
            start_index = peak_index + 1 if peak_index is not None else 0
            worst = {
                "max_drawdown": drawdown,
                "start": trades[start_index].trade_date,
                "end": trade.trade_date,
                "duration": index - start_index + 1,
            }
    return worst


def compute_calendar_stats(calendar, trades: Iterable, today: Optional[date] = None) -> CalendarStats:
    """Compute the cached statistics block for a calendar.

    Args:
        calendar: Calendar row (account balance and targets are read from it).
        trades: All trades of the calendar.
        today: Reference day for week/month/year P&L. Defaults to today (UTC).

    Returns:
        CalendarStats with every percentage capped at ``stats_percentage_cap``.
    """
    settings = get_settings()
    cap = settings.stats_percentage_cap
    today = today or datetime.utcnow().date()
    trades = sorted(trades, key=lambda t: (t.trade_date, t.created_at or t.trade_date))
    balance = calendar.account_balance or 0.0

    wins = [t.amount for t in trades if t.amount > 0]
    losses = [t.amount for t in trades if t.amount < 0]
    total_pnl = sum(t.amount for t in trades)
    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))

    if gross_loss > 0:
        profit_factor = min(gross_profit / gross_loss, settings.profit_factor_cap)
    elif gross_profit > 0:
        profit_factor = settings.profit_factor_no_loss
    else:
        profit_factor = 0.0

    weekly_pnl = _sum_since(trades, today - timedelta(days=today.weekday()))
    monthly_pnl = _sum_since(trades, today.replace(day=1))
    yearly_pnl = _sum_since(trades, today.replace(month=1, day=1))

    drawdown = _balance_drawdown(trades, balance)
    max_dd = _cap(drawdown["max_drawdown"], cap)
    if max_dd >= 100:
        recovery = cap
    elif max_dd > 0:
        recovery = _cap(max_dd / (100 - max_dd) * 100, cap)
    else:
        recovery = 0.0

    return CalendarStats(
        total_trades=len(trades),
        win_count=len(wins),
        loss_count=len(losses),
        total_pnl=total_pnl,
        win_rate=_cap(len(wins) / len(trades) * 100, cap) if trades else 0.0,
        profit_factor=profit_factor,
        max_drawdown=max_dd,
        target_progress=_pct(yearly_pnl, calendar.yearly_target, cap),
        pnl_performance=_pct(total_pnl, balance, cap),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=abs(sum(losses) / len(losses)) if losses else 0.0,
        current_balance=balance + total_pnl,
        drawdown_start_date=drawdown["start"],
        drawdown_end_date=drawdown["end"],
        drawdown_recovery_needed=recovery,
        drawdown_duration=drawdown["duration"],
        weekly_pnl=weekly_pnl,
        monthly_pnl=monthly_pnl,
        yearly_pnl=yearly_pnl,
        weekly_pnl_percentage=_pct(weekly_pnl, balance, cap),
        monthly_pnl_percentage=_pct(monthly_pnl, balance, cap),
        yearly_pnl_percentage=_pct(yearly_pnl, balance, cap),
        weekly_progress=_pct(weekly_pnl, calendar.weekly_target, cap),
        monthly_progress=_pct(monthly_pnl, calendar.monthly_target, cap),
    )


def apply_stats(calendar, stats: CalendarStats) -> None:
    """Copy a statistics block onto a calendar row."""
    for name in STAT_FIELDS:
        setattr(calendar, name, getattr(stats, name))


def refresh_calendar_stats(session, calendar, today: Optional[date] = None) -> CalendarStats:
    """Recompute and store the statistics of ``calendar`` from its trades in the database."""
    session.flush()
    stats = compute_calendar_stats(calendar, calendar_trades(session, calendar.id), today)
    apply_stats(calendar, stats)
    logger.debug("Recalculated stats for calendar %s", calendar.id, extra={"trade_count": stats.total_trades})
    return stats


def get_calendar_stats(calendar) -> CalendarStats:
    """Read the cached statistics block, with zero defaults for unset values."""
    defaults = CalendarStats()
    values = {}
    for name in STAT_FIELDS:
        value = getattr(calendar, name, None)
        values[name] = getattr(defaults, name) if value is None else value
    if calendar.current_balance is None:
        values["current_balance"] = calendar.account_balance or 0.0
    return CalendarStats(**values)
