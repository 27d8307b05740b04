"""One-way trade sync between linked calendars.

A calendar can be linked to a target calendar; new trades are copied to
the target with their amount recomputed from the target's risk settings.
Edits and deletions follow the copy only within the sync window.
"""

from datetime import datetime, timedelta
from typing import Optional

from tradejournal.db.models import Trade
from tradejournal.settings import get_settings
from tradejournal.stats.risk import (
    DynamicRiskSettings,
    risk_amount,
    risk_percentage_for_pnl,
    round_half_up,
)

# Columns never carried over to a synced copy
_STRIPPED_FIELDS = {
    "id",
    "created_at",
    "updated_at",
    "calendar_id",
    "source_trade_id",
    "is_synced_copy",
    "share_id",
    "share_link",
    "is_shared",
    "shared_at",
    "share_view_count",
}


def calculate_synced_amount(source_trade, target: DynamicRiskSettings, cumulative_pnl: float = 0.0) -> float:
    """Amount of a synced copy under the target calendar's risk settings.

    The raw amount is copied when the target has no risk per trade, the
    trade has no R:R, or partials were taken.
    """
    if not target.risk_per_trade or target.risk_per_trade <= 0:
        return source_trade.amount
    if not source_trade.risk_to_reward or source_trade.risk_to_reward <= 0:
        return source_trade.amount
    if source_trade.partials_taken:
        return source_trade.amount
    if source_trade.trade_type == "breakeven":
        return 0

    risk = risk_amount(risk_percentage_for_pnl(target, cumulative_pnl), target.account_balance, cumulative_pnl)
    if source_trade.trade_type == "win":
        return round_half_up(risk * source_trade.risk_to_reward)
    return -round_half_up(risk)


def prepare_synced_trade(
    source_trade: Trade,
    target_calendar_id: str,
    target: Optional[DynamicRiskSettings] = None,
    cumulative_pnl: float = 0.0,
) -> dict:
    """Column values for the copy of ``source_trade`` in the target calendar."""
    values = {
        column.name: getattr(source_trade, column.name)
        for column in Trade.__table__.columns
        if column.name not in _STRIPPED_FIELDS
    }
    values["tags"] = list(source_trade.tags or [])
    values["images"] = [dict(image) for image in source_trade.images or []]
    values["amount"] = (
        calculate_synced_amount(source_trade, target, cumulative_pnl)
        if target is not None
        else source_trade.amount
    )
    values["calendar_id"] = target_calendar_id
    values["source_trade_id"] = source_trade.id
    values["is_synced_copy"] = True
    values["is_shared"] = False
    values["share_view_count"] = 0
    return values


def _hours_since_creation(trade, now: Optional[datetime]) -> float:
    now = now or datetime.utcnow()
    return (now - trade.created_at) / timedelta(hours=1)


def is_within_sync_window(trade, now: Optional[datetime] = None) -> bool:
    return _hours_since_creation(trade, now) <= get_settings().sync_window_hours


def sync_window_hours_remaining(trade, now: Optional[datetime] = None) -> float:
    return max(0.0, get_settings().sync_window_hours - _hours_since_creation(trade, now))
