"""Trades: CRUD, image cleanup and linked-calendar sync."""

from tradejournal.trades.images import (
    ImageCleanupResult,
    ImageStore,
    can_delete_image,
    cleanup_removed_images,
    find_removed_images,
    image_exists_in_calendar,
)
from tradejournal.trades.service import TradeService, derive_trade_type
from tradejournal.trades.sync import (
    calculate_synced_amount,
    is_within_sync_window,
    prepare_synced_trade,
    sync_window_hours_remaining,
)

__all__ = [
    "ImageCleanupResult",
    "ImageStore",
    "TradeService",
    "calculate_synced_amount",
    "can_delete_image",
    "cleanup_removed_images",
    "derive_trade_type",
    "find_removed_images",
    "image_exists_in_calendar",
    "is_within_sync_window",
    "prepare_synced_trade",
    "sync_window_hours_remaining",
]
