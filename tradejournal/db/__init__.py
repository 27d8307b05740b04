"""Database package for the trade journal."""

from tradejournal.db.base import Base
from tradejournal.db.engine import get_engine, build_engine, init_db, SessionLocal
from tradejournal.db.models import (
    Calendar,
    Trade,
    TagDefinition,
    TradeType,
)

__all__ = [
    "Base",
    "get_engine",
    "build_engine",
    "init_db",
    "SessionLocal",
    "Calendar",
    "Trade",
    "TagDefinition",
    "TradeType",
]
