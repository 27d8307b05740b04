"""Public read-only share links."""

from tradejournal.sharing.service import (
    ShareLink,
    ShareService,
    SharedCalendarView,
    calendar_share_id,
    trade_share_id,
)

__all__ = [
    "ShareLink",
    "ShareService",
    "SharedCalendarView",
    "calendar_share_id",
    "trade_share_id",
]
