"""Trade API Routes.

Endpoints for trade CRUD, pinning, image upload and spreadsheet transfer.
"""

import io
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.orm import Session

from tradejournal.api.config import DEFAULT_API_CONFIG
from tradejournal.api.dependencies import get_db, get_image_store, require_user
from tradejournal.api.models import (
    CreateTradeRequest,
    ExportFormatEnum,
    ImportResponse,
    TradeResponse,
    TradeTypeEnum,
    UpdateTradeRequest,
)
from tradejournal.api_errors import ErrorCode, ValidationError, validate_date_range
from tradejournal.calendars import CalendarService
from tradejournal.db.models import new_id
from tradejournal.db.queries import calendar_trades
from tradejournal.trades import ImageStore, TradeService
from tradejournal.transfer import export_filename, export_trades_bytes, import_trades

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/calendars/{calendar_id}", tags=["Trades"])

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _trade_fields(request) -> dict:
    fields = request.model_dump(exclude_unset=True)
    if isinstance(fields.get("trade_type"), TradeTypeEnum):
        fields["trade_type"] = fields["trade_type"].value
    return fields


@router.get("/trades", response_model=list[TradeResponse])
def list_trades(
    calendar_id: str,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    tags: Optional[list[str]] = Query(default=None),
    pinned_only: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=100, ge=1, le=1000),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """List trades of a calendar with optional filters."""
    CalendarService(db).get_calendar(calendar_id, user_id)
    validate_date_range(start_date, end_date)
    return TradeService(db).list_trades(
        calendar_id,
        start_date=start_date,
        end_date=end_date,
        tags=tags,
        pinned_only=pinned_only,
        page=page,
        page_size=page_size,
    )


@router.post("/trades", response_model=TradeResponse, status_code=201)
def create_trade(
    calendar_id: str,
    request: CreateTradeRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Add a trade to a calendar."""
    return TradeService(db, image_store=store).add_trade(calendar_id, user_id, **_trade_fields(request))


@router.get("/trades/{trade_id}", response_model=TradeResponse)
def get_trade(
    calendar_id: str,
    trade_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    CalendarService(db).get_calendar(calendar_id, user_id)
    return TradeService(db).get_trade(calendar_id, trade_id)


@router.patch("/trades/{trade_id}", response_model=TradeResponse)
def update_trade(
    calendar_id: str,
    trade_id: str,
    request: UpdateTradeRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Update fields of a trade."""
    return TradeService(db, image_store=store).update_trade(calendar_id, trade_id, user_id, **_trade_fields(request))


@router.delete("/trades/{trade_id}", status_code=204)
def delete_trade(
    calendar_id: str,
    trade_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    TradeService(db, image_store=store).delete_trade(calendar_id, trade_id, user_id)
    return Response(status_code=204)


@router.post("/trades/{trade_id}/pin", response_model=TradeResponse)
def toggle_pin(
    calendar_id: str,
    trade_id: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Pin or unpin a trade."""
    return TradeService(db).toggle_pin(calendar_id, trade_id, user_id)


# ── Images ───────────────────────────────────────────────────────────


@router.post("/images", status_code=201)
def upload_image(
    calendar_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Store an image and return the metadata to attach to a trade."""
    CalendarService(db).get_calendar(calendar_id, user_id)
    data = file.file.read()
    if not data:
        raise ValidationError("Uploaded image is empty", field="file")

    metadata = store.save(user_id, new_id(), data, filename=file.filename)
    metadata["calendar_id"] = calendar_id
    return metadata


# ── Import / export ──────────────────────────────────────────────────


@router.post("/import", response_model=ImportResponse, status_code=201)
def import_file(
    calendar_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Import trades from an uploaded CSV or Excel file."""
    CalendarService(db).get_calendar(calendar_id, user_id)
    content = file.file.read()
    if len(content) > DEFAULT_API_CONFIG.max_upload_bytes:
        raise ValidationError("Import file is too large", error_code=ErrorCode.INVALID_IMPORT_FILE, field="file")

    rows = import_trades(io.BytesIO(content), filename=file.filename or "")
    created = TradeService(db, image_store=store).import_trades(calendar_id, user_id, rows)
    return ImportResponse(imported=len(created), trades=[TradeResponse.model_validate(t) for t in created])


@router.get("/export")
def export_file(
    calendar_id: str,
    format: ExportFormatEnum = Query(default=ExportFormatEnum.XLSX),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Download the calendar's trades as CSV or Excel. Empty calendars return 204."""
    calendar = CalendarService(db).get_calendar(calendar_id, user_id)
    content = export_trades_bytes(calendar_trades(db, calendar_id), calendar.account_balance, format.value)
    if content is None:
        return Response(status_code=204)

    return Response(
        content=content,
        media_type=MEDIA_TYPES[format.value],
        headers={"Content-Disposition": f'attachment; filename="{export_filename(format.value)}"'},
    )
