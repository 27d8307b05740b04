"""Sharing API Routes.

Owner endpoints generate and revoke share links; the ``/shared`` endpoints
are public and need no user header.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tradejournal.api.dependencies import get_db, require_user
from tradejournal.api.models import (
    CalendarResponse,
    ShareLinkResponse,
    SharedCalendarResponse,
    TradeResponse,
)
from tradejournal.sharing import ShareService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Sharing"])


@router.post("/calendars/{calendar_id}/share", response_model=ShareLinkResponse, status_code=201)
def share_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    link = ShareService(db).generate_calendar_share_link(calendar_id, user_id)
    return ShareLinkResponse(**vars(link))


@router.post("/calendars/{calendar_id}/trades/{trade_id}/share", response_model=ShareLinkResponse, status_code=201)
def share_trade(
    calendar_id: str,
    trade_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    link = ShareService(db).generate_trade_share_link(calendar_id, trade_id, user_id)
    return ShareLinkResponse(**vars(link))


@router.delete("/shares/calendars/{share_id}", response_model=CalendarResponse)
def deactivate_calendar_share(
    share_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return ShareService(db).deactivate_calendar_share(share_id, user_id)


@router.delete("/shares/trades/{share_id}", response_model=TradeResponse)
def deactivate_trade_share(
    share_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return ShareService(db).deactivate_trade_share(share_id, user_id)


# ── Public ───────────────────────────────────────────────────────────


@router.get("/shared/{share_id}", response_model=TradeResponse)
def get_shared_trade(share_id: str, db: Session = Depends(get_db)):
    """Public view of a shared trade."""
    return ShareService(db).get_shared_trade(share_id)


@router.get("/shared-calendar/{share_id}", response_model=SharedCalendarResponse)
def get_shared_calendar(share_id: str, db: Session = Depends(get_db)):
    """Public view of a shared calendar and its trades."""
    view = ShareService(db).get_shared_calendar(share_id)
    return SharedCalendarResponse(
        calendar=CalendarResponse.model_validate(view.calendar),
        trades=[TradeResponse.model_validate(t) for t in view.trades],
    )
