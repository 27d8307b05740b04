"""Tag Service - renaming tags across a calendar and tag definitions.

Provides:
- Rename (or delete) a tag or a whole tag group in every trade of a calendar
- Calendar metadata rewrite: required groups, tag registry, score settings
- Per-user tag definitions
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import ErrorCode, ValidationError
from tradejournal.db.models import Calendar, TagDefinition, Trade, utcnow
from tradejournal.db.queries import get_owned_calendar
from tradejournal.logging_config import bind_calendar, log_performance
from tradejournal.settings import get_settings
from tradejournal.tags.propagation import (
    extract_tags_from_trades,
    get_tag_group,
    update_tags_with_group_name_change,
    update_trade_tags_with_group_name_change,
)

logger = logging.getLogger(__name__)

SCORE_SETTINGS_TAG_LISTS = ("excluded_tags_from_patterns", "selected_tags")


@dataclass
class TagRenameResult:
    """Result of a tag rename across a calendar."""

    trades_updated: int = 0


def refresh_calendar_tags(session: Session, calendar: Calendar) -> list[str]:
    """Rebuild a calendar's tag registry from all of its trades."""
    trades = session.query(Trade.tags).filter(Trade.calendar_id == calendar.id).all()
    calendar.tags = extract_tags_from_trades({"tags": row.tags} for row in trades)
    return calendar.tags


class TagService:
    """Service for tag renames and tag definitions."""

    def __init__(self, session: Session, batch_size: Optional[int] = None):
        """Initialize service with database session."""
        self.session = session
        self.batch_size = batch_size or get_settings().tag_update_batch_size

    # =========================================================================
    # Rename
    # =========================================================================

    @log_performance(threshold_ms=2000)
    def rename_tag(
        self,
        calendar_id: str,
        old_tag: str,
        new_tag: Optional[str],
        user_id: str,
    ) -> TagRenameResult:
        """Rename a tag, or a tag group, everywhere in a calendar.

        A blank ``new_tag`` deletes ``old_tag``. Renaming ``Setup:A`` to
        ``Entry:A`` moves every ``Setup:*`` tag into the ``Entry`` group.

        Args:
            calendar_id: Calendar whose trades are rewritten.
            old_tag: Tag to replace.
            new_tag: Replacement, or blank to delete.
            user_id: Caller; must own the calendar.

        Returns:
            TagRenameResult with the number of changed tag elements.

        Raises:
            ValidationError: Missing parameters.
            NotFoundError: Unknown calendar.
            AuthorizationError: Calendar owned by someone else.
        """
        if not calendar_id or not old_tag or new_tag is None:
            raise ValidationError(
                "Missing required parameters: calendar_id, old_tag, or new_tag",
                error_code=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        if old_tag == new_tag:
            logger.info("old_tag and new_tag are identical, no update needed")
            return TagRenameResult(trades_updated=0)

        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        bind_calendar(calendar_id)
        logger.info("Renaming tag %r to %r in calendar %s", old_tag, new_tag, calendar_id)

        trades_updated = self._update_trade_tags(calendar_id, old_tag, new_tag)
        self._update_calendar_metadata(calendar, old_tag, new_tag)
        refresh_calendar_tags(self.session, calendar)
        calendar.updated_at = utcnow()
        self.session.commit()

        logger.info(
            "Tag rename complete: %d tag(s) updated",
            trades_updated,
            extra={"tags_updated": trades_updated},
        )
        return TagRenameResult(trades_updated=trades_updated)

    def _update_trade_tags(self, calendar_id: str, old_tag: str, new_tag: str) -> int:
        trades = (
            self.session.query(Trade)
            .filter(Trade.calendar_id == calendar_id)
            .order_by(Trade.id)
            .all()
        )
        if not trades:
            logger.info("No trades found for calendar %s", calendar_id)
            return 0

        total = 0
        for start in range(0, len(trades), self.batch_size):
            batch = trades[start:start + self.batch_size]
            changed = 0
            for trade in batch:
                result = update_trade_tags_with_group_name_change(trade.tags, old_tag, new_tag)
                if result.updated:
                    trade.tags = result.tags
                    trade.updated_at = utcnow()
                    total += result.updated_count
                    changed += 1
            if changed:
                self.session.flush()
                logger.debug("Updated batch of %d trades", changed)
        return total

    def _update_calendar_metadata(self, calendar: Calendar, old_tag: str, new_tag: str) -> None:
        old_group = get_tag_group(old_tag)
        new_group = get_tag_group(new_tag) if new_tag else None

        if isinstance(calendar.required_tag_groups, list):
            if old_group and new_group and old_group != new_group:
                calendar.required_tag_groups = [
                    new_group if group == old_group else group
                    for group in calendar.required_tag_groups
                ]
                logger.info("Updated required tag group: %s -> %s", old_group, new_group)

        if isinstance(calendar.tags, list):
            calendar.tags = update_tags_with_group_name_change(calendar.tags, old_tag, new_tag)

        if calendar.score_settings:
            score_settings = dict(calendar.score_settings)
            for key in SCORE_SETTINGS_TAG_LISTS:
                if isinstance(score_settings.get(key), list):
                    score_settings[key] = update_tags_with_group_name_change(
                        score_settings[key], old_tag, new_tag
                    )
            calendar.score_settings = score_settings

    # =========================================================================
    # Definitions
    # =========================================================================

    def fetch_definitions(self, user_id: str) -> dict[str, str]:
        """Get every tag definition of a user as ``{tag_name: definition}``."""
        if not user_id:
            return {}
        rows = self.session.query(TagDefinition).filter(TagDefinition.user_id == user_id).all()
        return {row.tag_name: row.definition for row in rows}

    def fetch_definition(self, user_id: str, tag_name: str) -> str:
        """Get one definition, or an empty string when there is none."""
        if not user_id or not tag_name:
            return ""
        row = self._get_definition(user_id, tag_name)
        return row.definition if row else ""

    def save_definition(
        self,
        user_id: str,
        tag_name: str,
        definition: str,
        original_definition: Optional[str] = None,
    ) -> Optional[TagDefinition]:
        """Create, update or clear a tag definition.

        Args:
            user_id: Owner of the definition.
            tag_name: Tag being described.
            definition: New text; blank clears it.
            original_definition: Text the caller started from. When given
                and equal to ``definition`` nothing is written.

        Returns:
            The stored TagDefinition, or None when nothing is stored.
        """
        if not user_id or not tag_name:
            return None

        trimmed = (definition or "").strip()
        if original_definition is not None and trimmed == original_definition.strip():
            return self._get_definition(user_id, tag_name)

        if trimmed:
            row = self._get_definition(user_id, tag_name)
            if row is None:
                row = TagDefinition(user_id=user_id, tag_name=tag_name, definition=trimmed)
                self.session.add(row)
            else:
                row.definition = trimmed
                row.updated_at = utcnow()
            self.session.commit()
            return row

        if original_definition:
            self.delete_definition(user_id, tag_name)
        return None

    def delete_definition(self, user_id: str, tag_name: str) -> bool:
        """Delete a tag definition. Returns False when there was none."""
        row = self._get_definition(user_id, tag_name)
        if row is None:
            logger.warning("Tag definition %s not found for user %s", tag_name, user_id)
            return False
        self.session.delete(row)
        self.session.commit()
        return True

    def _get_definition(self, user_id: str, tag_name: str) -> Optional[TagDefinition]:
        return (
            self.session.query(TagDefinition)
            .filter(TagDefinition.user_id == user_id, TagDefinition.tag_name == tag_name)
            .first()
        )
