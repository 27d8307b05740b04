"""Lookup helpers shared by the services."""

from typing import Optional

from sqlalchemy.orm import Session

from tradejournal.api_errors import AuthorizationError, ErrorCode, NotFoundError
from tradejournal.db.models import Calendar, Trade


def get_calendar_or_404(session: Session, calendar_id: str) -> Calendar:
    calendar = session.get(Calendar, calendar_id)
    if calendar is None:
        raise NotFoundError(
            f"Calendar {calendar_id} not found",
            error_code=ErrorCode.CALENDAR_NOT_FOUND,
            resource_type="calendar",
            resource_id=calendar_id,
        )
    return calendar


def get_owned_calendar(session: Session, calendar_id: str, user_id: Optional[str]) -> Calendar:
    """Load a calendar and check that ``user_id`` owns it.

    Raises:
        NotFoundError: The calendar does not exist.
        AuthorizationError: It belongs to another user.
    """
    calendar = get_calendar_or_404(session, calendar_id)
    if calendar.user_id != user_id:
        raise AuthorizationError("Unauthorized access to calendar")
    return calendar


def get_trade_or_404(session: Session, calendar_id: str, trade_id: str) -> Trade:
    trade = session.get(Trade, trade_id)
    if trade is None or trade.calendar_id != calendar_id:
        raise NotFoundError(
            f"Trade {trade_id} not found",
            error_code=ErrorCode.TRADE_NOT_FOUND,
            resource_type="trade",
            resource_id=trade_id,
        )
    return trade


def calendar_trades(session: Session, calendar_id: str) -> list[Trade]:
    """All trades of a calendar ordered by date, then creation time."""
    return (
        session.query(Trade)
        .filter(Trade.calendar_id == calendar_id)
        .order_by(Trade.trade_date, Trade.created_at)
        .all()
    )
