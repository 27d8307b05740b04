"""Trade statistics over in-memory trade lists.

Provides:
- Total P&L, win rate, profit factor, averages
- Maximum drawdown with start/end dates, duration and recovery needed
- Target progress
- Date and tag filters (weeks start on Monday)

Trades are any objects exposing ``amount``, ``trade_type``, ``trade_date``
and ``tags`` (ORM rows or plain namespaces).
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

NO_LOSS_PROFIT_FACTOR = 999.0


@dataclass
class DrawdownResult:
    """Largest peak-to-trough decline of the running P&L."""

    max_drawdown: float = 0.0
    drawdown_start_date: Optional[datetime] = None
    drawdown_end_date: Optional[datetime] = None
    drawdown_recovery_needed: float = 0.0
    drawdown_duration: int = 0


def _day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def calculate_total_pnl(trades: Iterable) -> float:
    return sum(trade.amount for trade in trades)


def calculate_win_rate(trades: list) -> float:
    """Percentage of trades typed ``win``."""
    if not trades:
        return 0.0
    wins = sum(1 for trade in trades if trade.trade_type == "win")
    return wins / len(trades) * 100


def calculate_profit_factor(trades: Iterable) -> float:
    """Gross profit divided by gross loss.

    With no losing trades the factor is 999 when there is any profit and
    0 otherwise.
    """
    trades = list(trades)
    gross_profit = sum(t.amount for t in trades if t.amount > 0)
    gross_loss = abs(sum(t.amount for t in trades if t.amount < 0))

    if gross_loss == 0:
        return NO_LOSS_PROFIT_FACTOR if gross_profit > 0 else 0.0
    return gross_profit / gross_loss


def calculate_max_drawdown(trades: Iterable) -> DrawdownResult:
    """Maximum drawdown of the cumulative P&L, starting from zero.

    The drawdown is measured against the running peak once that peak is
    positive. Duration counts trades from the start of the worst drawdown
    to its trough, inclusive.
    """
    ordered = sorted(trades, key=lambda t: t.trade_date)
    if not ordered:
        return DrawdownResult()

    balance = 0.0
    peak = 0.0
    max_dd = 0.0
    start_date = end_date = None
    duration = 0
    current_start: Optional[int] = None

    for index, trade in enumerate(ordered):
        balance += trade.amount

        if balance > peak:
            peak = balance
            current_start = None
        elif peak > 0:
            drawdown = (peak - balance) / peak * 100
            if drawdown > max_dd:
                max_dd = drawdown
                start_index = current_start if current_start is not None else index
                start_date = ordered[start_index].trade_date
                end_date = trade.trade_date
                duration = index - start_index + 1

            if current_start is None:
                current_start = index

    recovery = max_dd / (100 - max_dd) * 100 if 0 < max_dd < 100 else 0.0

    return DrawdownResult(
        max_drawdown=max_dd,
        drawdown_start_date=start_date,
        drawdown_end_date=end_date,
        drawdown_recovery_needed=recovery,
        drawdown_duration=duration,
    )


def calculate_target_progress(trades: Iterable, account_balance: float, target: Optional[float]) -> float:
    """Progress towards a percentage target of the account balance, clamped to 0-100."""
    if not target or target <= 0 or not account_balance:
        return 0.0

    target_amount = target / 100 * account_balance
    progress = calculate_total_pnl(trades) / target_amount * 100
    return min(max(progress, 0.0), 100.0)


def calculate_averages(trades: Iterable) -> tuple[float, float]:
    """Average win and absolute average loss, by trade type.

    Returns:
        Tuple of (avg_win, avg_loss).
    """
    trades = list(trades)
    wins = [t.amount for t in trades if t.trade_type == "win"]
    losses = [t.amount for t in trades if t.trade_type == "loss"]

    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = abs(sum(losses)) / len(losses) if losses else 0.0
    return avg_win, avg_loss


# =============================================================================
# Filters
# =============================================================================


def week_start(value) -> date:
    """Monday of the week containing ``value``."""
    day = _day(value)
    return day - timedelta(days=day.weekday())


def filter_trades_by_date_range(trades: Iterable, start: date, end: date) -> list:
    """Trades dated between ``start`` and ``end`` (inclusive, by day)."""
    start, end = _day(start), _day(end)
    return [t for t in trades if start <= _day(t.trade_date) <= end]


def filter_trades_by_day(trades: Iterable, day: date) -> list:
    day = _day(day)
    return [t for t in trades if _day(t.trade_date) == day]


def filter_trades_by_week(trades: Iterable, day: date) -> list:
    monday = week_start(day)
    return [t for t in trades if week_start(t.trade_date) == monday]


def filter_trades_by_month(trades: Iterable, day: date) -> list:
    day = _day(day)
    return [
        t for t in trades
        if t.trade_date.year == day.year and t.trade_date.month == day.month
    ]


def filter_trades_by_year(trades: Iterable, day: date) -> list:
    return [t for t in trades if t.trade_date.year == _day(day).year]


def filter_trades_by_tags(trades: Iterable, tags: list[str]) -> list:
    """Trades carrying at least one of ``tags``. No tags means no filtering."""
    trades = list(trades)
    if not tags:
        return trades
    wanted = set(tags)
    return [t for t in trades if wanted.intersection(t.tags or [])]
