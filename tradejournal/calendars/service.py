"""Calendar Service - CRUD, duplication, statistics and linking.

Provides:
- Create, read, update calendars
- Duplicate a calendar, optionally with its trades
- Recalculate and read cached statistics
- Link a calendar to a target calendar for one-way trade sync
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import (
    ConflictError,
    ErrorCode,
    ValidationError,
    sanitize_string,
    validate_amount,
)
from tradejournal.db.models import Calendar, Trade, new_id, utcnow
from tradejournal.db.queries import calendar_trades, get_calendar_or_404, get_owned_calendar
from tradejournal.logging_config import bind_calendar, log_performance
from tradejournal.stats.calendar_stats import CalendarStats, get_calendar_stats, refresh_calendar_stats
from tradejournal.tags.propagation import extract_tags_from_trades

logger = logging.getLogger(__name__)

# Settings copied when a calendar is duplicated
SETTINGS_FIELDS = (
    "account_balance",
    "max_daily_drawdown",
    "weekly_target",
    "monthly_target",
    "yearly_target",
    "risk_per_trade",
    "dynamic_risk_enabled",
    "increased_risk_percentage",
    "profit_threshold_percentage",
    "required_tag_groups",
    "score_settings",
)

EDITABLE_FIELDS = SETTINGS_FIELDS + ("name", "hero_image_url")

# Settings that change the cached statistics
STATS_FIELDS = {"account_balance", "weekly_target", "monthly_target", "yearly_target"}

NUMERIC_FIELDS = {
    "account_balance",
    "max_daily_drawdown",
    "weekly_target",
    "monthly_target",
    "yearly_target",
    "risk_per_trade",
    "increased_risk_percentage",
    "profit_threshold_percentage",
}

# Trade columns not carried into a duplicated calendar
_TRADE_COPY_SKIP = {
    "id",
    "calendar_id",
    "created_at",
    "updated_at",
    "share_id",
    "share_link",
    "is_shared",
    "shared_at",
    "share_view_count",
    "source_trade_id",
    "is_synced_copy",
}


class CalendarService:
    """Service for managing trade calendars."""

    def __init__(self, session: Session):
        """Initialize service with database session."""
        self.session = session

    def _clean_settings(self, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown calendar field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        cleaned = dict(fields)
        for key in NUMERIC_FIELDS & set(cleaned):
            if cleaned[key] is not None:
                cleaned[key] = validate_amount(cleaned[key], field=key)
        if cleaned.get("account_balance") is not None and cleaned["account_balance"] < 0:
            raise ValidationError(
                "account_balance cannot be negative",
                error_code=ErrorCode.INVALID_AMOUNT,
                field="account_balance",
            )
        if "name" in cleaned:
            if not cleaned["name"] or not str(cleaned["name"]).strip():
                raise ValidationError("Calendar name is required", error_code=ErrorCode.MISSING_REQUIRED_FIELD, field="name")
            cleaned["name"] = sanitize_string(str(cleaned["name"]).strip(), max_length=200)
        if "required_tag_groups" in cleaned:
            cleaned["required_tag_groups"] = list(cleaned["required_tag_groups"] or [])
        if cleaned.get("score_settings") is not None:
            cleaned["score_settings"] = dict(cleaned["score_settings"])
        return cleaned

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_calendar(self, user_id: str, name: str, account_balance: float = 0.0, **settings: Any) -> Calendar:
        """Create a new calendar.

        Args:
            user_id: Owner of the calendar.
            name: Display name.
            account_balance: Starting balance of the account.
            **settings: Targets, risk and tag settings.

        Returns:
            Created Calendar record.
        """
        cleaned = self._clean_settings({"name": name, "account_balance": account_balance, **settings})
        cleaned.setdefault("required_tag_groups", [])
        calendar = Calendar(user_id=user_id, tags=[], **cleaned)
        calendar.current_balance = calendar.account_balance
        self.session.add(calendar)
        self.session.commit()

        logger.info("Created calendar %s for user %s", calendar.id, user_id)
        return calendar

    def get_calendar(self, calendar_id: str, user_id: Optional[str] = None) -> Calendar:
        """Get a calendar, checking ownership when ``user_id`` is given.

        Raises:
            NotFoundError: Unknown calendar.
            AuthorizationError: Calendar owned by someone else.
        """
        if user_id is None:
            return get_calendar_or_404(self.session, calendar_id)
        return get_owned_calendar(self.session, calendar_id, user_id)

    def get_user_calendars(self, user_id: str, include_deleted: bool = False) -> list[Calendar]:
        """Get a user's calendars, newest first. Trashed calendars are excluded by default."""
        query = self.session.query(Calendar).filter(Calendar.user_id == user_id)
        if not include_deleted:
            query = query.filter(Calendar.deleted_at.is_(None))
        return query.order_by(Calendar.created_at.desc()).all()

    def update_calendar(self, calendar_id: str, user_id: str, **changes: Any) -> Calendar:
        """Update calendar settings. Statistics are recalculated when balance or targets change."""
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        cleaned = self._clean_settings(changes)

        for key, value in cleaned.items():
            setattr(calendar, key, value)
        calendar.updated_at = utcnow()

        if STATS_FIELDS & set(cleaned):
            refresh_calendar_stats(self.session, calendar)
        self.session.commit()

        logger.info("Updated calendar %s", calendar_id)
        return calendar

    # =========================================================================
    # Duplication
    # =========================================================================

    @log_performance(threshold_ms=2000)
    def duplicate_calendar(
        self,
        user_id: str,
        source_id: str,
        new_name: str,
        include_content: bool = False,
    ) -> Calendar:
        """Copy a calendar's settings, and optionally its trades, into a new calendar.

        The copy is marked as duplicated from ``source_id``. Copied trades
        keep their image metadata, so image files are shared with the source
        until both stop referencing them.

        Returns:
            The new Calendar record.
        """
        source = get_owned_calendar(self.session, source_id, user_id)
        settings = {key: getattr(source, key) for key in SETTINGS_FIELDS}
        settings["required_tag_groups"] = list(source.required_tag_groups or [])
        if source.score_settings is not None:
            settings["score_settings"] = dict(source.score_settings)

        duplicate = Calendar(
            id=new_id(),
            user_id=user_id,
            name=self._clean_settings({"name": new_name})["name"],
            duplicated_calendar=True,
            source_calendar_id=source_id,
            tags=[],
            **settings,
        )
        self.session.add(duplicate)
        self.session.flush()

        copied = []
        if include_content:
            for trade in calendar_trades(self.session, source_id):
                values = {
                    column.name: getattr(trade, column.name)
                    for column in Trade.__table__.columns
                    if column.name not in _TRADE_COPY_SKIP
                }
                values["tags"] = list(trade.tags or [])
                values["images"] = [dict(image) for image in trade.images or []]
                values["user_id"] = user_id
                copy = Trade(calendar_id=duplicate.id, is_shared=False, share_view_count=0, **values)
                self.session.add(copy)
                copied.append(copy)
            duplicate.tags = extract_tags_from_trades(copied)

        refresh_calendar_stats(self.session, duplicate)
        self.session.commit()

        logger.info(
            "Duplicated calendar %s into %s",
            source_id,
            duplicate.id,
            extra={"trade_count": len(copied)},
        )
        return duplicate

    # =========================================================================
    # Statistics
    # =========================================================================

    @log_performance(threshold_ms=1000)
    def recalculate_stats(self, calendar_id: str) -> CalendarStats:
        """Recompute the cached statistics of a calendar from its trades."""
        calendar = get_calendar_or_404(self.session, calendar_id)
        bind_calendar(calendar_id)
        stats = refresh_calendar_stats(self.session, calendar)
        self.session.commit()
        return stats

    def get_stats(self, calendar_id: str) -> CalendarStats:
        """Read the cached statistics of a calendar."""
        return get_calendar_stats(get_calendar_or_404(self.session, calendar_id))

    # =========================================================================
    # Linking
    # =========================================================================

    def link_calendar(self, source_id: str, target_id: str, user_id: str) -> Calendar:
        """Sync new trades of ``source_id`` into ``target_id``.

        Raises:
            ValidationError: Linking a calendar to itself.
            ConflictError: The target already syncs into the source, directly or
                through other linked calendars, or is trashed.
        """
        if source_id == target_id:
            raise ValidationError("A calendar cannot be linked to itself", field="target_calendar_id")

        source = get_owned_calendar(self.session, source_id, user_id)
        target = get_owned_calendar(self.session, target_id, user_id)
        if target.is_deleted:
            raise ConflictError("Cannot link to a calendar in trash")
        if self._links_back_to(target, source_id):
            raise ConflictError("Target calendar already syncs into this calendar")

        source.linked_to_calendar_id = target_id
        source.updated_at = utcnow()
        self.session.commit()

        logger.info("Linked calendar %s to %s", source_id, target_id)
        return source

    def _links_back_to(self, calendar: Calendar, source_id: str) -> bool:
        visited = set()
        next_id = calendar.linked_to_calendar_id
        while next_id and next_id not in visited:
            if next_id == source_id:
                return True
            visited.add(next_id)
            linked = self.session.get(Calendar, next_id)
            next_id = linked.linked_to_calendar_id if linked else None
        return False

    def unlink_calendar(self, source_id: str, user_id: str) -> Calendar:
        """Stop syncing trades out of ``source_id``."""
        source = get_owned_calendar(self.session, source_id, user_id)
        source.linked_to_calendar_id = None
        source.updated_at = utcnow()
        self.session.commit()
        return source
