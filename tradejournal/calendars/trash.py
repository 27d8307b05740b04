"""Calendar trash with delayed permanent deletion.

Trashed calendars stay restorable for ``trash_retention_days``; after that
``purge_expired`` deletes them with their trades and unshared images.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import ConflictError, ErrorCode, StorageError
from tradejournal.db.models import Calendar, Trade, utcnow
from tradejournal.db.queries import get_owned_calendar
from tradejournal.settings import get_settings
from tradejournal.trades.images import ImageStore, can_delete_image, image_ids

logger = logging.getLogger(__name__)


def days_until_deletion(auto_delete_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days left before a trashed calendar is purged (never negative)."""
    if auto_delete_at is None:
        return 0
    now = now or utcnow()
    diff_days = (auto_delete_at - now) / timedelta(days=1)
    return max(0, math.ceil(diff_days))


class TrashService:
    """Service for trashing, restoring and purging calendars."""

    def __init__(
        self,
        session: Session,
        image_store: Optional[ImageStore] = None,
        retention_days: Optional[int] = None,
    ):
        self.session = session
        self.image_store = image_store or ImageStore()
        self.retention_days = retention_days or get_settings().trash_retention_days

    def move_to_trash(self, calendar_id: str, user_id: str, now: Optional[datetime] = None) -> Calendar:
        """Soft-delete a calendar and schedule its permanent deletion."""
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        now = now or utcnow()

        calendar.deleted_at = now
        calendar.deleted_by = user_id
        calendar.auto_delete_at = now + timedelta(days=self.retention_days)
        calendar.updated_at = now
        self.session.commit()

        logger.info("Moved calendar %s to trash, auto delete at %s", calendar_id, calendar.auto_delete_at)
        return calendar

    def _require_trashed(self, calendar: Calendar) -> None:
        if calendar.deleted_at is None:
            raise ConflictError("Calendar is not in trash", error_code=ErrorCode.CALENDAR_NOT_IN_TRASH)

    def restore(self, calendar_id: str, user_id: str) -> Calendar:
        """Take a calendar out of the trash.

        Raises:
            ConflictError: The calendar is not in the trash.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        self._require_trashed(calendar)

        calendar.deleted_at = None
        calendar.deleted_by = None
        calendar.auto_delete_at = None
        calendar.updated_at = utcnow()
        self.session.commit()

        logger.info("Restored calendar %s from trash", calendar_id)
        return calendar

    def permanently_delete(self, calendar_id: str, user_id: str) -> int:
        """Delete a trashed calendar, its trades and its unshared images.

        Returns:
            Number of trades deleted.

        Raises:
            ConflictError: The calendar is not in the trash.
        """
        calendar = get_owned_calendar(self.session, calendar_id, user_id)
        self._require_trashed(calendar)
        return self._purge(calendar)

    def list_trash(self, user_id: str) -> list[Calendar]:
        """Trashed calendars of a user, most recently trashed first."""
        return (
            self.session.query(Calendar)
            .filter(Calendar.user_id == user_id, Calendar.deleted_at.isnot(None))
            .order_by(Calendar.deleted_at.desc())
            .all()
        )

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Permanently delete every trashed calendar past its auto-delete time.

        Returns:
            Number of calendars deleted.
        """
        now = now or utcnow()
        expired = (
            self.session.query(Calendar)
            .filter(Calendar.deleted_at.isnot(None), Calendar.auto_delete_at <= now)
            .all()
        )
        for calendar in expired:
            self._purge(calendar)

        if expired:
            logger.info("Purged %d expired calendar(s) from trash", len(expired))
        return len(expired)

    def _purge(self, calendar: Calendar) -> int:
        calendar_id, owner_id = calendar.id, calendar.user_id
        trades = self.session.query(Trade).filter(Trade.calendar_id == calendar.id).all()

        removable = []
        for trade in trades:
            for image_id in image_ids(trade.images):
                if image_id not in removable and can_delete_image(self.session, image_id, calendar_id):
                    removable.append(image_id)

        (
            self.session.query(Calendar)
            .filter(Calendar.linked_to_calendar_id == calendar_id)
            .update({Calendar.linked_to_calendar_id: None}, synchronize_session="fetch")
        )
        for trade in trades:
            self.session.delete(trade)
        self.session.delete(calendar)
        self.session.commit()

        for image_id in removable:
            try:
                self.image_store.delete(owner_id, image_id)
            except StorageError:
                logger.exception("Error deleting image %s of calendar %s", image_id, calendar_id)

        logger.info("Permanently deleted calendar %s with %d trades", calendar_id, len(trades))
        return len(trades)
