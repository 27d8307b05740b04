"""SQLAlchemy ORM models for the trade journal.

Tables:
- calendars: per-account trade calendars with settings and cached statistics
- trades: individual trades with tags and image metadata (JSON arrays)
- tag_definitions: per-user descriptions of tags
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from tradejournal.db.base import Base


def utcnow() -> datetime:
    """Naive UTC timestamp used for every stored datetime."""
    return datetime.utcnow()


def new_id() -> str:
    return str(uuid.uuid4())


class TradeType(str, enum.Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class Calendar(Base):
    """A trading account journal: settings, tag registry and cached stats."""

    __tablename__ = "calendars"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Account settings
    account_balance = Column(Float, nullable=False, default=0.0)
    max_daily_drawdown = Column(Float, nullable=False, default=0.0)
    weekly_target = Column(Float)
    monthly_target = Column(Float)
    yearly_target = Column(Float)
    risk_per_trade = Column(Float)

    # Dynamic risk
    dynamic_risk_enabled = Column(Boolean, default=False)
    increased_risk_percentage = Column(Float)
    profit_threshold_percentage = Column(Float)

    # Duplication and linking
    duplicated_calendar = Column(Boolean, default=False, nullable=False)
    source_calendar_id = Column(String(36), index=True)
    linked_to_calendar_id = Column(String(36), index=True)

    # Trash
    deleted_at = Column(DateTime)
    deleted_by = Column(String(128))
    auto_delete_at = Column(DateTime)

    # Tags and settings
    required_tag_groups = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    score_settings = Column(JSON)
    hero_image_url = Column(Text)

    # Sharing
    share_id = Column(String(120), unique=True)
    share_link = Column(Text)
    is_shared = Column(Boolean, default=False, nullable=False)
    shared_at = Column(DateTime)
    share_view_count = Column(Integer, default=0, nullable=False)

    # Cached statistics
    total_trades = Column(Integer, default=0)
    win_count = Column(Integer, default=0)
    loss_count = Column(Integer, default=0)
    total_pnl = Column(Float, default=0.0)
    win_rate = Column(Float, default=0.0)
    profit_factor = Column(Float, default=0.0)
    max_drawdown = Column(Float, default=0.0)
    target_progress = Column(Float, default=0.0)
    pnl_performance = Column(Float, default=0.0)
    avg_win = Column(Float, default=0.0)
    avg_loss = Column(Float, default=0.0)
    current_balance = Column(Float)
    drawdown_start_date = Column(DateTime)
    drawdown_end_date = Column(DateTime)
    drawdown_recovery_needed = Column(Float, default=0.0)
    drawdown_duration = Column(Integer, default=0)
    weekly_pnl = Column(Float, default=0.0)
    monthly_pnl = Column(Float, default=0.0)
    yearly_pnl = Column(Float, default=0.0)
    weekly_pnl_percentage = Column(Float, default=0.0)
    monthly_pnl_percentage = Column(Float, default=0.0)
    yearly_pnl_percentage = Column(Float, default=0.0)
    weekly_progress = Column(Float, default=0.0)
    monthly_progress = Column(Float, default=0.0)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    trades = relationship(
        "Trade",
        back_populates="calendar",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Trade(Base):
    """A single journaled trade."""

    __tablename__ = "trades"

    id = Column(String(36), primary_key=True, default=new_id)
    calendar_id = Column(
        String(36),
        ForeignKey("calendars.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(128), nullable=False, index=True)

    # Core trade data
    name = Column(String(200))
    amount = Column(Float, nullable=False, default=0.0)
    trade_type = Column(String(20), nullable=False)  # win, loss, breakeven
    trade_date = Column(DateTime, nullable=False, index=True)

    # Details
    entry_price = Column(Float)
    exit_price = Column(Float)
    stop_loss = Column(Float)
    take_profit = Column(Float)
    risk_to_reward = Column(Float)
    partials_taken = Column(Boolean, default=False)
    session = Column(String(30))
    notes = Column(Text)

    tags = Column(JSON, default=list)
    images = Column(JSON, default=list)

    # Flags
    is_temporary = Column(Boolean, default=False)
    is_pinned = Column(Boolean, default=False)

    # Sharing
    share_id = Column(String(200), unique=True)
    share_link = Column(Text)
    is_shared = Column(Boolean, default=False, nullable=False)
    shared_at = Column(DateTime)
    share_view_count = Column(Integer, default=0, nullable=False)

    # Linked-calendar sync
    source_trade_id = Column(String(36), index=True)
    is_synced_copy = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    calendar = relationship("Calendar", back_populates="trades")

    __table_args__ = (
        Index("ix_trades_calendar_date", "calendar_id", "trade_date"),
    )


class TagDefinition(Base):
    """User-authored description of a tag."""

    __tablename__ = "tag_definitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    tag_name = Column(String(200), nullable=False)
    definition = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "tag_name", name="uq_tag_definition_user_tag"),
    )
