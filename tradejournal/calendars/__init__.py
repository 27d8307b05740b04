"""Calendars: CRUD, duplication, linking and trash."""

from tradejournal.calendars.service import CalendarService
from tradejournal.calendars.trash import TrashService, days_until_deletion

__all__ = ["CalendarService", "TrashService", "days_until_deletion"]
