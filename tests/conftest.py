"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tradejournal.db.engine import build_engine, get_session_factory, init_db  # noqa: E402
from tradejournal.db.models import Calendar, Trade  # noqa: E402
from tradejournal.trades.images import ImageStore  # noqa: E402


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session on a fresh in-memory SQLite database."""
    session = get_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(str(tmp_path / "images"))


@pytest.fixture
def make_calendar(session):
    """Insert a calendar row directly, bypassing the service layer."""

    def _make(user_id: str = "user-1", name: str = "Main", **fields) -> Calendar:
        fields.setdefault("account_balance", 10000.0)
        fields.setdefault("tags", [])
        fields.setdefault("required_tag_groups", [])
        calendar = Calendar(user_id=user_id, name=name, **fields)
        session.add(calendar)
        session.commit()
        return calendar

    return _make


@pytest.fixture
def make_trade(session):
    """Insert a trade row directly, bypassing the service layer."""

    def _make(calendar: Calendar, amount: float = 100.0, trade_date=None, **fields) -> Trade:
        if amount > 0:
            default_type = "win"
        elif amount < 0:
            default_type = "loss"
        else:
            default_type = "breakeven"
        trade = Trade(
            calendar_id=calendar.id,
            user_id=calendar.user_id,
            amount=amount,
            trade_type=fields.pop("trade_type", default_type),
            trade_date=trade_date or datetime(2025, 3, 10, 14, 0),
            tags=fields.pop("tags", []),
            images=fields.pop("images", []),
            **fields,
        )
        session.add(trade)
        session.commit()
        return trade

    return _make
