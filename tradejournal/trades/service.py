"""Trade Service - CRUD operations for calendar trades.

Provides:
- Add, read, list, update, delete trades
- Calendar tag registry and statistics kept in step with trade changes
- Image cleanup when images are removed from trades
- One-way sync of trades to a linked calendar
- Bulk import and month clearing
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import (
    ErrorCode,
    ValidationError,
    sanitize_string,
    validate_amount,
    validate_pagination,
    validate_tag,
    validate_trade_type,
)
from tradejournal.db.models import Calendar, Trade, TradeType, utcnow
from tradejournal.db.queries import get_owned_calendar, get_trade_or_404
from tradejournal.logging_config import PerformanceTimer, bind_calendar
from tradejournal.stats.calendar_stats import refresh_calendar_stats
from tradejournal.stats.risk import DynamicRiskSettings, cumulative_pnl_to_date
from tradejournal.tags.propagation import (
    PAIR_GROUP,
    missing_required_groups,
    normalize_pair_tag,
    update_calendar_tags_from_trade_changes,
)
from tradejournal.trades.images import ImageStore, cleanup_removed_images
from tradejournal.trades.sync import is_within_sync_window, prepare_synced_trade

logger = logging.getLogger(__name__)

# Fields a caller may set on a trade
EDITABLE_FIELDS = (
    "name",
    "amount",
    "trade_type",
    "trade_date",
    "entry_price",
    "exit_price",
    "stop_loss",
    "take_profit",
    "risk_to_reward",
    "partials_taken",
    "session",
    "notes",
    "tags",
    "images",
    "is_temporary",
    "is_pinned",
)

# Fields mirrored onto a synced copy when the source trade changes
SYNCED_FIELDS = tuple(f for f in EDITABLE_FIELDS if f != "is_pinned")


def derive_trade_type(amount: float) -> str:
    if amount > 0:
        return TradeType.WIN.value
    if amount < 0:
        return TradeType.LOSS.value
    return TradeType.BREAKEVEN.value


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    raise ValidationError("trade_date must be a date", field="trade_date")


def _clean_tags(tags: Optional[Iterable[str]]) -> list[str]:
    cleaned = []
    for tag in tags or []:
        if isinstance(tag, str) and not tag.strip():
            continue
        tag = validate_tag(tag, field="tags")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def _tag_snapshot(trades: Iterable[Trade]) -> list[dict]:
    return [{"tags": list(t.tags or [])} for t in trades]


class TradeService:
    """Service for managing the trades of a calendar."""

    def __init__(self, session: Session, image_store: Optional[ImageStore] = None):
        """Initialize service with database session."""
        self.session = session
        self.image_store = image_store or ImageStore()

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_required_tags(self, calendar: Calendar, tags: list[str], is_temporary: bool = False) -> None:
        """Ensure a trade carries a tag from every required tag group.

        Temporary trades are exempt.

        Raises:
            ValidationError: With the missing groups in ``details``.
        """
        if is_temporary or not calendar.required_tag_groups:
            return
        missing = missing_required_groups(tags, calendar.required_tag_groups)
        if missing:
            raise ValidationError(
                f"Missing tags for required group(s): {', '.join(missing)}",
                error_code=ErrorCode.MISSING_REQUIRED_TAGS,
                details=[{"field": "tags", "issue": f"Missing group {group}"} for group in missing],
            )

    def _clean_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown trade field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        cleaned = dict(fields)
        if "trade_type" in cleaned and not cleaned["trade_type"]:
            del cleaned["trade_type"]
        if "amount" in cleaned:
            cleaned["amount"] = validate_amount(cleaned["amount"])
        if cleaned.get("trade_type") is not None:
            cleaned["trade_type"] = validate_trade_type(cleaned["trade_type"])
        if "trade_date" in cleaned:
            cleaned["trade_date"] = _as_datetime(cleaned["trade_date"])
        if "tags" in cleaned:
            cleaned["tags"] = _clean_tags(cleaned["tags"])
        if "images" in cleaned:
            cleaned["images"] = [dict(image) for image in cleaned["images"] or []]
        for key in ("name", "notes"):
            if cleaned.get(key) is not None:
                cleaned[key] = sanitize_string(cleaned[key])
        return cleaned

    # =========================================================================
    # Queries
    # =========================================================================

    def get_trade(self, calendar_id: str, trade_id: str) -> Trade:
        """Get a trade of a calendar.

        Raises:
            NotFoundError: Unknown trade or trade of another calendar.
        """
        return get_trade_or_404(self.session, calendar_id, trade_id)

    def list_trades(
        self,
        calendar_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        tags: Optional[list[str]] = None,
        pinned_only: bool = False,
        page: int = 1,
        page_size: int = 1000,
    ) -> list[Trade]:
        """List trades of a calendar, oldest first.

        Args:
            calendar_id: Calendar to read.
            start_date: Earliest trade day (inclusive).
            end_date: Latest trade day (inclusive).
            tags: Only trades carrying at least one of these tags.
            pinned_only: Only pinned trades.
            page: Page number (1-indexed).
            page_size: Trades per page.
        """
        page, page_size = validate_pagination(page, page_size)
        query = self.session.query(Trade).filter(Trade.calendar_id == calendar_id)
        if start_date:
            query = query.filter(Trade.trade_date >= _as_datetime(start_date))
        if end_date:
            end = datetime.combine(_as_datetime(end_date).date(), datetime.max.time())
            query = query.filter(Trade.trade_date <= end)
        if pinned_only:
            query = query.filter(Trade.is_pinned.is_(True))

        trades = query.order_by(Trade.trade_date, Trade.created_at).all()
        if tags:
            wanted = set(tags)
            trades = [t for t in trades if wanted.intersection(t.tags or [])]

        offset = (page - 1) * page_size
        return trades[offset:offset + page_size]

    def _other_trades(self, calendar_id: str, exclude_ids: set[str]) -> list[Trade]:
        return [
            t for t in self.session.query(Trade).filter(Trade.calendar_id == calendar_id).all()
            if t.id not in exclude_ids
        ]

    def _merge_calendar_tags(self, calendar: Calendar, before: list[dict], after: list[Trade]) -> None:
        others = self._other_trades(calendar.id, {t.id for t in after})
        updated = update_calendar_tags_from_trade_changes(calendar.tags, before, after, others)
        if updated is not None:
            calendar.tags = updated

    # =========================================================================
    # Create
    # =========================================================================

    def add_trade(self, calendar_id: str, user_id: str, **fields: Any) -> Trade:
        """Add a trade to a calendar.

        ``trade_type`` is derived from the amount sign when omitted. New tags
        join the calendar's tag registry, statistics are recalculated and the
        trade is copied to the linked calendar if there is one.

        Args:
            calendar_id: Calendar receiving the trade.
            user_id: Caller; must own the calendar.
            **fields: Trade fields (``amount`` and ``trade_date`` required).

        Returns:
            Created Trade record.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)
        trade = self._build_trade(calendar, user_id, fields)
        self.session.add(trade)
        self.session.flush()

        self._merge_calendar_tags(calendar, [], [trade])
        refresh_calendar_stats(self.session, calendar)
        self._sync_new_trade(calendar, trade)
        self.session.commit()

        logger.info("Added trade %s to calendar %s", trade.id, calendar_id)
        return trade

    def _build_trade(self, calendar: Calendar, user_id: str, fields: dict[str, Any]) -> Trade:
        for required in ("amount", "trade_date"):
            if fields.get(required) is None:
                raise ValidationError(
                    f"{required} is required",
                    error_code=ErrorCode.MISSING_REQUIRED_FIELD,
                    field=required,
                )

        cleaned = self._clean_fields(fields)
        cleaned.setdefault("tags", [])
        cleaned.setdefault("images", [])
        if not cleaned.get("trade_type"):
            cleaned["trade_type"] = derive_trade_type(cleaned["amount"])
        for image in cleaned["images"]:
            image.setdefault("calendar_id", calendar.id)

        self.validate_required_tags(calendar, cleaned["tags"], bool(cleaned.get("is_temporary")))
        return Trade(calendar_id=calendar.id, user_id=user_id, **cleaned)

    # =========================================================================
    # Update
    # =========================================================================

    def update_trade(self, calendar_id: str, trade_id: str, user_id: str, **changes: Any) -> Trade:
        """Update fields of a trade.

        Images dropped from the trade are deleted from storage when no
        related calendar still uses them. The calendar's tag registry and
        statistics follow the change, and a synced copy in the linked
        calendar is updated while inside the sync window.

        Returns:
            Updated Trade record.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)
        trade = get_trade_or_404(self.session, calendar_id, trade_id)

        cleaned = self._clean_fields(changes)
        for image in cleaned.get("images", []):
            image.setdefault("calendar_id", calendar_id)
        if "amount" in cleaned and "trade_type" not in cleaned:
            cleaned["trade_type"] = derive_trade_type(cleaned["amount"])
        if "tags" in cleaned or "is_temporary" in cleaned:
            self.validate_required_tags(
                calendar,
                cleaned.get("tags", trade.tags or []),
                bool(cleaned.get("is_temporary", trade.is_temporary)),
            )

        before_tags = _tag_snapshot([trade])
        old_images = list(trade.images or [])

        for key, value in cleaned.items():
            setattr(trade, key, value)
        trade.updated_at = utcnow()
        self.session.flush()

        if "tags" in cleaned:
            self._merge_calendar_tags(calendar, before_tags, [trade])
        if "images" in cleaned:
            cleanup_removed_images(
                self.session, self.image_store, old_images, trade.images, calendar_id, calendar.user_id
            )
        refresh_calendar_stats(self.session, calendar)
        self._sync_updated_trade(calendar, trade)
        self.session.commit()

        logger.info("Updated trade %s", trade_id)
        return trade

    def toggle_pin(self, calendar_id: str, trade_id: str, user_id: str) -> Trade:
        """Flip the pinned flag of a trade."""
        get_owned_calendar(self.session, calendar_id, user_id)
        trade = get_trade_or_404(self.session, calendar_id, trade_id)
        trade.is_pinned = not trade.is_pinned
        trade.updated_at = utcnow()
        self.session.commit()
        return trade

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_trade(self, calendar_id: str, trade_id: str, user_id: str) -> bool:
        """Delete a trade, its unshared images and, inside the sync window, its synced copy."""
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)
        trade = get_trade_or_404(self.session, calendar_id, trade_id)

        self._remove_trades(calendar, [trade])
        refresh_calendar_stats(self.session, calendar)
        self.session.commit()

        logger.info("Deleted trade %s from calendar %s", trade_id, calendar_id)
        return True

    def clear_month_trades(self, calendar_id: str, year: int, month: int, user_id: str) -> int:
        """Delete every trade of a calendar month.

        Returns:
            Number of trades deleted.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)
        trades = [
            t for t in self.session.query(Trade).filter(Trade.calendar_id == calendar_id).all()
            if t.trade_date.year == year and t.trade_date.month == month
        ]
        if not trades:
            return 0

        self._remove_trades(calendar, trades)
        refresh_calendar_stats(self.session, calendar)
        self.session.commit()

        logger.info("Cleared %d trades from %d-%02d in calendar %s", len(trades), year, month, calendar_id)
        return len(trades)

    def _remove_trades(self, calendar: Calendar, trades: list[Trade]) -> None:
        before_tags = _tag_snapshot(trades)
        removed_ids = {t.id for t in trades}
        for trade in trades:
            self._delete_synced_copy(calendar, trade)
            images = list(trade.images or [])
            self.session.delete(trade)
            self.session.flush()
            cleanup_removed_images(self.session, self.image_store, images, [], calendar.id, calendar.user_id)

        others = self._other_trades(calendar.id, removed_ids)
        updated = update_calendar_tags_from_trade_changes(calendar.tags, before_tags, [], others)
        if updated is not None:
            calendar.tags = updated

    # =========================================================================
    # Import
    # =========================================================================

    def import_trades(self, calendar_id: str, user_id: str, trades: list[dict[str, Any]]) -> list[Trade]:
        """Add many trades at once.

        ``Pair:`` tags are normalized to ``pair:`` and a ``pair`` field is
        folded into a ``pair:<value>`` tag. Tags and statistics are updated
        once for the whole batch.

        Returns:
            Created Trade records.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)

        created = []
        with PerformanceTimer("import_trades"):
            for raw in trades:
                fields = dict(raw)
                pair = fields.pop("pair", None)
                tags = [normalize_pair_tag(tag) for tag in fields.get("tags") or [] if isinstance(tag, str)]
                if pair and str(pair).strip():
                    pair_tag = f"{PAIR_GROUP}:{str(pair).strip()}"
                    if pair_tag not in tags:
                        tags.append(pair_tag)
                fields["tags"] = tags
                fields.setdefault("is_temporary", False)

                trade = self._build_trade(calendar, user_id, fields)
                self.session.add(trade)
                created.append(trade)

            self.session.flush()
            self._merge_calendar_tags(calendar, [], created)
            refresh_calendar_stats(self.session, calendar)
            self.session.commit()

        logger.info("Imported %d trades into calendar %s", len(created), calendar_id, extra={"trade_count": len(created)})
        return created

    # =========================================================================
    # Linked-calendar sync
    # =========================================================================

    def _linked_target(self, calendar: Calendar) -> Optional[Calendar]:
        target_id = calendar.linked_to_calendar_id
        if not target_id or target_id == calendar.id:
            return None
        target = self.session.get(Calendar, target_id)
        if target is None or target.is_deleted:
            return None
        return target

    def _find_synced_copy(self, target: Calendar, trade: Trade) -> Optional[Trade]:
        return (
            self.session.query(Trade)
            .filter(Trade.calendar_id == target.id, Trade.source_trade_id == trade.id)
            .first()
        )

    def _synced_values(self, target: Calendar, trade: Trade) -> dict:
        others = [t for t in self.session.query(Trade).filter(Trade.calendar_id == target.id).all()
                  if t.source_trade_id != trade.id]
        cumulative = cumulative_pnl_to_date(trade.trade_date, others)
        return prepare_synced_trade(trade, target.id, DynamicRiskSettings.from_calendar(target), cumulative)

    def _sync_new_trade(self, calendar: Calendar, trade: Trade) -> Optional[Trade]:
        target = self._linked_target(calendar)
        if target is None or trade.is_synced_copy:
            return None

        values = self._synced_values(target, trade)
        values["user_id"] = target.user_id
        copy = Trade(**values)
        self.session.add(copy)
        self.session.flush()

        self._merge_calendar_tags(target, [], [copy])
        refresh_calendar_stats(self.session, target)
        logger.info("Synced trade %s to calendar %s", trade.id, target.id)
        return copy

    def _sync_updated_trade(self, calendar: Calendar, trade: Trade) -> None:
        target = self._linked_target(calendar)
        if target is None or not is_within_sync_window(trade):
            return
        copy = self._find_synced_copy(target, trade)
        if copy is None:
            return

        before_tags = _tag_snapshot([copy])
        values = self._synced_values(target, trade)
        for key in SYNCED_FIELDS:
            setattr(copy, key, values[key])
        copy.updated_at = utcnow()
        self.session.flush()

        self._merge_calendar_tags(target, before_tags, [copy])
        refresh_calendar_stats(self.session, target)

    def _delete_synced_copy(self, calendar: Calendar, trade: Trade) -> None:
        target = self._linked_target(calendar)
        if target is None or not is_within_sync_window(trade):
            return
        copy = self._find_synced_copy(target, trade)
        if copy is None:
            return

        before_tags = _tag_snapshot([copy])
        self.session.delete(copy)
        self.session.flush()
        updated = update_calendar_tags_from_trade_changes(
            target.tags, before_tags, [], self._other_trades(target.id, set())
        )
        if updated is not None:
            target.tags = updated
        refresh_calendar_stats(self.session, target)
        logger.info("Removed synced copy of trade %s from calendar %s", trade.id, target.id)

