"""Calendar API Routes.

Endpoints for calendar CRUD, duplication, linking, trash and statistics.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from tradejournal.api.dependencies import get_db, get_image_store, require_user
from tradejournal.api.models import (
    CalendarResponse,
    CreateCalendarRequest,
    DeletedResponse,
    DuplicateCalendarRequest,
    LinkCalendarRequest,
    TrashedCalendarResponse,
    UpdateCalendarRequest,
)
from tradejournal.api_errors import validate_date_range
from tradejournal.calendars import CalendarService, TrashService, days_until_deletion
from tradejournal.db.queries import calendar_trades
from tradejournal.stats.grid import build_month_grid, build_year_summary
from tradejournal.stats.metrics import filter_trades_by_date_range
from tradejournal.stats.tag_performance import session_performance, tag_performance
from tradejournal.trades import ImageStore, TradeService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/calendars", tags=["Calendars"])


def _trash_service(db: Session, store: ImageStore) -> TrashService:
    return TrashService(db, image_store=store)


@router.get("", response_model=list[CalendarResponse])
def list_calendars(
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """List the caller's calendars, excluding trashed ones."""
    return CalendarService(db).get_user_calendars(user_id)


@router.post("", response_model=CalendarResponse, status_code=201)
def create_calendar(
    request: CreateCalendarRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Create a calendar."""
    return CalendarService(db).create_calendar(user_id, **request.model_dump(exclude_none=True))


@router.get("/trash", response_model=list[TrashedCalendarResponse])
def list_trash(
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """List the caller's trashed calendars with the days left before purge."""
    calendars = _trash_service(db, store).list_trash(user_id)
    return [
        TrashedCalendarResponse.model_validate(calendar).model_copy(
            update={"days_until_deletion": days_until_deletion(calendar.auto_delete_at)}
        )
        for calendar in calendars
    ]


@router.get("/{calendar_id}", response_model=CalendarResponse)
def get_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return CalendarService(db).get_calendar(calendar_id, user_id)


@router.patch("/{calendar_id}", response_model=CalendarResponse)
def update_calendar(
    calendar_id: str,
    request: UpdateCalendarRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Update calendar settings."""
    return CalendarService(db).update_calendar(calendar_id, user_id, **request.model_dump(exclude_unset=True))


@router.post("/{calendar_id}/duplicate", response_model=CalendarResponse, status_code=201)
def duplicate_calendar(
    calendar_id: str,
    request: DuplicateCalendarRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Copy a calendar's settings, and optionally its trades."""
    return CalendarService(db).duplicate_calendar(
        user_id, calendar_id, request.name, include_content=request.include_content
    )


@router.post("/{calendar_id}/link", response_model=CalendarResponse)
def link_calendar(
    calendar_id: str,
    request: LinkCalendarRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Sync new trades of this calendar into a target calendar."""
    return CalendarService(db).link_calendar(calendar_id, request.target_calendar_id, user_id)


@router.delete("/{calendar_id}/link", response_model=CalendarResponse)
def unlink_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return CalendarService(db).unlink_calendar(calendar_id, user_id)


# ── Trash ────────────────────────────────────────────────────────────


@router.delete("/{calendar_id}", response_model=CalendarResponse)
def trash_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Move a calendar to the trash."""
    return _trash_service(db, store).move_to_trash(calendar_id, user_id)


@router.post("/{calendar_id}/restore", response_model=CalendarResponse)
def restore_calendar(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    return _trash_service(db, store).restore(calendar_id, user_id)


@router.delete("/{calendar_id}/permanent", response_model=DeletedResponse)
def delete_calendar_permanently(
    calendar_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Delete a trashed calendar with its trades."""
    return DeletedResponse(deleted=_trash_service(db, store).permanently_delete(calendar_id, user_id))


# ── Statistics ───────────────────────────────────────────────────────


@router.get("/{calendar_id}/stats")
def get_stats(
    calendar_id: str,
    recalculate: bool = Query(default=False),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Cached statistics of a calendar, optionally recomputed first."""
    service = CalendarService(db)
    service.get_calendar(calendar_id, user_id)
    stats = service.recalculate_stats(calendar_id) if recalculate else service.get_stats(calendar_id)
    return stats.to_dict()


@router.get("/{calendar_id}/grid/{year}/{month}")
def get_month_grid(
    calendar_id: str,
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Monthly calendar grid with day cells and week summaries."""
    calendar = CalendarService(db).get_calendar(calendar_id, user_id)
    grid = build_month_grid(calendar_trades(db, calendar_id), year, month, calendar.account_balance)
    return asdict(grid)


@router.get("/{calendar_id}/year/{year}")
def get_year_summary(
    calendar_id: str,
    year: int = Path(..., ge=1970, le=9999),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Per-month summaries of a year."""
    calendar = CalendarService(db).get_calendar(calendar_id, user_id)
    months = build_year_summary(calendar_trades(db, calendar_id), year, calendar.account_balance)
    return [asdict(month) for month in months]


@router.get("/{calendar_id}/tag-performance")
def get_tag_performance(
    calendar_id: str,
    tags: Optional[list[str]] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Results per tag and per session."""
    calendar = CalendarService(db).get_calendar(calendar_id, user_id)
    trades = calendar_trades(db, calendar_id)
    if start_date or end_date:
        start, end = validate_date_range(start_date, end_date)
        trades = filter_trades_by_date_range(trades, start or date.min, end or date.max)

    excluded = (calendar.score_settings or {}).get("excluded_tags_from_patterns") or []
    return {
        "tags": [asdict(p) for p in tag_performance(trades, tags=tags, excluded=excluded)],
        "sessions": [asdict(p) for p in session_performance(trades)],
    }


@router.delete("/{calendar_id}/months/{year}/{month}", response_model=DeletedResponse)
def clear_month(
    calendar_id: str,
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Delete every trade of a month."""
    deleted = TradeService(db, image_store=store).clear_month_trades(calendar_id, year, month, user_id)
    return DeletedResponse(deleted=deleted)
