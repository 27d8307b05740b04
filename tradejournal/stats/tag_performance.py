"""Per-tag and per-session performance breakdowns."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from tradejournal.stats.sessions import session_mappings

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass
class TagPerformance:
    """Results of every trade carrying a tag (or taken in a session)."""

    tag: str
    trade_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    avg_pnl: float = 0.0


def _performance(label: str, trades: list) -> TagPerformance:
    count = len(trades)
    wins = sum(1 for t in trades if t.trade_type == "win")
    total = sum(t.amount for t in trades)
    return TagPerformance(
        tag=label,
        trade_count=count,
        win_count=wins,
        loss_count=sum(1 for t in trades if t.trade_type == "loss"),
        win_rate=wins / count * 100 if count else 0.0,
        total_pnl=total,
        avg_pnl=total / count if count else 0.0,
    )


def tag_performance(
    trades: Iterable,
    tags: Optional[list[str]] = None,
    excluded: Optional[list[str]] = None,
) -> list[TagPerformance]:
    """Performance of each tag, most used first.

    Args:
        trades: Trades to analyse.
        tags: Only report these tags. All tags when omitted.
        excluded: Tags to leave out.
    """
    by_tag = defaultdict(list)
    for trade in trades:
        for tag in set(trade.tags or []):
            by_tag[tag].append(trade)

    wanted = set(tags) if tags else None
    skipped = set(excluded or [])
    results = [
        _performance(tag, tag_trades)
        for tag, tag_trades in by_tag.items()
        if tag not in skipped and (wanted is None or tag in wanted)
    ]
    results.sort(key=lambda p: (-p.trade_count, p.tag))
    return results


def tag_day_of_week(trades: Iterable, tag: str) -> pd.DataFrame:
    """Trades, win rate and P&L of one tag per weekday (Monday first)."""
    records = [
        {
            "day": DAY_NAMES[t.trade_date.weekday()],
            "amount": t.amount,
            "win": 1 if t.trade_type == "win" else 0,
        }
        for t in trades
        if tag in (t.tags or [])
    ]
    frame = pd.DataFrame(records, columns=["day", "amount", "win"])
    grouped = frame.groupby("day").agg(
        trade_count=("amount", "count"),
        total_pnl=("amount", "sum"),
        wins=("win", "sum"),
    )
    grouped = grouped.reindex(DAY_NAMES, fill_value=0)
    grouped["win_rate"] = (grouped["wins"] / grouped["trade_count"].where(grouped["trade_count"] > 0) * 100).fillna(0.0)
    return grouped.drop(columns=["wins"])


def session_performance(trades: Iterable) -> list[TagPerformance]:
    """Performance per trading session; trades without a session are skipped.

    Legacy names are expanded, so a ``new-york`` trade counts for both NY sessions.
    """
    by_session = defaultdict(list)
    for trade in trades:
        if not trade.session:
            continue
        for name in session_mappings(trade.session) or [trade.session]:
            by_session[name].append(trade)
    return sorted(
        (_performance(name, items) for name, items in by_session.items()),
        key=lambda p: (-p.trade_count, p.tag),
    )
