"""Tag API Routes.

Tag renames across a calendar and per-user tag definitions.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from tradejournal.api.dependencies import get_db, require_user
from tradejournal.api.models import (
    RenameTagRequest,
    RenameTagResponse,
    TagDefinitionRequest,
    TagDefinitionResponse,
)
from tradejournal.api_errors import NotFoundError
from tradejournal.calendars import CalendarService
from tradejournal.tags import TagService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Tags"])


@router.post("/calendars/{calendar_id}/tags/rename", response_model=RenameTagResponse)
def rename_tag(
    calendar_id: str,
    request: RenameTagRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Rename a tag, or move a tag group, in every trade of a calendar."""
    result = TagService(db).rename_tag(calendar_id, request.old_tag, request.new_tag, user_id)
    calendar = CalendarService(db).get_calendar(calendar_id, user_id)
    return RenameTagResponse(trades_updated=result.trades_updated, tags=list(calendar.tags or []))


@router.get("/tag-definitions", response_model=dict[str, str])
def list_definitions(
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    return TagService(db).fetch_definitions(user_id)


@router.get("/tag-definitions/{tag_name}", response_model=TagDefinitionResponse)
def get_definition(
    tag_name: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Definition of one tag; empty when none was written."""
    return TagDefinitionResponse(tag_name=tag_name, definition=TagService(db).fetch_definition(user_id, tag_name))


@router.put("/tag-definitions/{tag_name}", response_model=TagDefinitionResponse)
def save_definition(
    tag_name: str,
    request: TagDefinitionRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Create or replace a definition. A blank definition deletes it."""
    service = TagService(db)
    original = service.fetch_definition(user_id, tag_name)
    row = service.save_definition(user_id, tag_name, request.definition, original_definition=original)
    return TagDefinitionResponse(tag_name=tag_name, definition=row.definition if row else "")


@router.delete("/tag-definitions/{tag_name}", status_code=204)
def delete_definition(
    tag_name: str,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    if not TagService(db).delete_definition(user_id, tag_name):
        raise NotFoundError(
            f"Tag definition {tag_name} not found",
            resource_type="tag_definition",
            resource_id=tag_name,
        )
    return Response(status_code=204)
