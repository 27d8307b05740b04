"""Share Service - public read-only links for trades and calendars.

Share ids are deterministic so generating a link twice returns the same URL:
``share_<calendarId>_<tradeId>`` for trades and ``calendar_share_<calendarId>``
for calendars.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import ErrorCode, NotFoundError
from tradejournal.db.models import Calendar, Trade, utcnow
from tradejournal.db.queries import calendar_trades, get_owned_calendar, get_trade_or_404
from tradejournal.settings import get_settings

logger = logging.getLogger(__name__)


def trade_share_id(calendar_id: str, trade_id: str) -> str:
    return f"share_{calendar_id}_{trade_id}"


def calendar_share_id(calendar_id: str) -> str:
    return f"calendar_share_{calendar_id}"


@dataclass
class ShareLink:
    """A generated share link."""

    share_id: str
    share_link: str
    calendar_id: str
    trade_id: Optional[str] = None


@dataclass
class SharedCalendarView:
    """Public view of a shared calendar with its trades."""

    calendar: Calendar
    trades: list[Trade] = field(default_factory=list)


class ShareService:
    """Generates, resolves and revokes share links."""

    def __init__(self, session: Session, base_url: Optional[str] = None):
        self.session = session
        self.base_url = (base_url or get_settings().share_base_url).rstrip("/")

    # =========================================================================
    # Trades
    # =========================================================================

    def generate_trade_share_link(self, calendar_id: str, trade_id: str, user_id: str) -> ShareLink:
        """Mark a trade as shared and return its public link.

        Raises:
            NotFoundError: Unknown calendar or trade.
            AuthorizationError: The calendar belongs to another user.
        """
        get_owned_calendar(self.session, calendar_id, user_id)
        trade = get_trade_or_404(self.session, calendar_id, trade_id)

        share_id = trade_share_id(calendar_id, trade_id)
        link = f"{self.base_url}/shared/{share_id}"
        trade.share_id = share_id
        trade.share_link = link
        if not trade.is_shared:
            trade.shared_at = utcnow()
        trade.is_shared = True
        self.session.commit()

        logger.info("Shared trade %s of calendar %s", trade_id, calendar_id)
        return ShareLink(share_id=share_id, share_link=link, calendar_id=calendar_id, trade_id=trade_id)

    def deactivate_trade_share(self, share_id: str, user_id: str) -> Trade:
        """Revoke a trade share. Only the calendar owner may do this."""
        trade = self._trade_by_share_id(share_id)
        get_owned_calendar(self.session, trade.calendar_id, user_id)

        trade.is_shared = False
        self.session.commit()

        logger.info("Deactivated trade share %s", share_id)
        return trade

    def get_shared_trade(self, share_id: str) -> Trade:
        """Resolve a public trade link and count the view.

        Raises:
            NotFoundError: The link does not exist, was revoked, or its
                calendar is in the trash.
        """
        trade = self._trade_by_share_id(share_id)
        if not trade.is_shared or trade.calendar is None or trade.calendar.is_deleted:
            raise self._not_found(share_id)

        trade.share_view_count = (trade.share_view_count or 0) + 1
        self.session.commit()
        return trade

    def _trade_by_share_id(self, share_id: str) -> Trade:
        trade = self.session.query(Trade).filter(Trade.share_id == share_id).first()
        if trade is None:
            raise self._not_found(share_id)
        return trade

    # =========================================================================
    # Calendars
    # =========================================================================

    def generate_calendar_share_link(self, calendar_id: str, user_id: str) -> ShareLink:
        """Mark a calendar as shared and return its public link."""
        calendar = get_owned_calendar(self.session, calendar_id, user_id)

        share_id = calendar_share_id(calendar_id)
        link = f"{self.base_url}/shared-calendar/{share_id}"
        calendar.share_id = share_id
        calendar.share_link = link
        if not calendar.is_shared:
            calendar.shared_at = utcnow()
        calendar.is_shared = True
        self.session.commit()

        logger.info("Shared calendar %s", calendar_id)
        return ShareLink(share_id=share_id, share_link=link, calendar_id=calendar_id)

    def deactivate_calendar_share(self, share_id: str, user_id: str) -> Calendar:
        """Revoke a calendar share. Only the owner may do this."""
        calendar = self._calendar_by_share_id(share_id)
        get_owned_calendar(self.session, calendar.id, user_id)

        calendar.is_shared = False
        self.session.commit()

        logger.info("Deactivated calendar share %s", share_id)
        return calendar

    def get_shared_calendar(self, share_id: str) -> SharedCalendarView:
        """Resolve a public calendar link, count the view and return its trades."""
        calendar = self._calendar_by_share_id(share_id)
        if not calendar.is_shared or calendar.is_deleted:
            raise self._not_found(share_id)

        calendar.share_view_count = (calendar.share_view_count or 0) + 1
        self.session.commit()
        return SharedCalendarView(calendar=calendar, trades=calendar_trades(self.session, calendar.id))

    def _calendar_by_share_id(self, share_id: str) -> Calendar:
        calendar = self.session.query(Calendar).filter(Calendar.share_id == share_id).first()
        if calendar is None:
            raise self._not_found(share_id)
        return calendar

    @staticmethod
    def _not_found(share_id: str) -> NotFoundError:
        return NotFoundError(
            f"Shared item {share_id} not found",
            error_code=ErrorCode.SHARE_NOT_FOUND,
            resource_type="share",
            resource_id=share_id,
        )
