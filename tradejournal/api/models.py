"""API Request/Response Models.

Pydantic schemas for all API endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─── Common ──────────────────────────────────────────────────────────────


class TradeTypeEnum(str, Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class ExportFormatEnum(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    components: dict[str, str] = Field(default_factory=dict)


class DeletedResponse(BaseModel):
    deleted: int = 0


# ─── Calendars ───────────────────────────────────────────────────────────


class ScoreSettings(BaseModel):
    excluded_tags_from_patterns: list[str] = Field(default_factory=list)
    selected_tags: list[str] = Field(default_factory=list)


class CalendarSettingsFields(BaseModel):
    """Settings shared by the create and update requests."""

    max_daily_drawdown: Optional[float] = None
    weekly_target: Optional[float] = None
    monthly_target: Optional[float] = None
    yearly_target: Optional[float] = None
    risk_per_trade: Optional[float] = None
    dynamic_risk_enabled: Optional[bool] = None
    increased_risk_percentage: Optional[float] = None
    profit_threshold_percentage: Optional[float] = None
    required_tag_groups: Optional[list[str]] = None
    score_settings: Optional[ScoreSettings] = None
    hero_image_url: Optional[str] = None


class CreateCalendarRequest(CalendarSettingsFields):
    name: str = Field(..., min_length=1, max_length=200)
    account_balance: float = Field(default=0.0, ge=0)


class UpdateCalendarRequest(CalendarSettingsFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    account_balance: Optional[float] = Field(default=None, ge=0)


class DuplicateCalendarRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    include_content: bool = False


class LinkCalendarRequest(BaseModel):
    target_calendar_id: str


class CalendarResponse(BaseModel):
    """Calendar with its settings and cached statistics."""

    model_config = {"from_attributes": True}

    id: str
    user_id: str
    name: str
    account_balance: float
    max_daily_drawdown: float = 0.0
    weekly_target: Optional[float] = None
    monthly_target: Optional[float] = None
    yearly_target: Optional[float] = None
    risk_per_trade: Optional[float] = None
    dynamic_risk_enabled: Optional[bool] = None
    increased_risk_percentage: Optional[float] = None
    profit_threshold_percentage: Optional[float] = None
    duplicated_calendar: bool = False
    source_calendar_id: Optional[str] = None
    linked_to_calendar_id: Optional[str] = None
    deleted_at: Optional[datetime] = None
    auto_delete_at: Optional[datetime] = None
    required_tag_groups: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    score_settings: Optional[dict[str, Any]] = None
    hero_image_url: Optional[str] = None
    is_shared: bool = False
    share_link: Optional[str] = None
    total_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    current_balance: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class TrashedCalendarResponse(CalendarResponse):
    days_until_deletion: int = 0


# ─── Trades ──────────────────────────────────────────────────────────────


class TradeImage(BaseModel):
    model_config = {"extra": "allow"}

    id: str
    url: str
    calendar_id: Optional[str] = None
    filename: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    caption: Optional[str] = None


class TradeFields(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    trade_type: Optional[TradeTypeEnum] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    risk_to_reward: Optional[float] = None
    partials_taken: Optional[bool] = None
    session: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    images: Optional[list[TradeImage]] = None
    is_temporary: Optional[bool] = None
    is_pinned: Optional[bool] = None


class CreateTradeRequest(TradeFields):
    amount: float
    trade_date: datetime


class UpdateTradeRequest(TradeFields):
    amount: Optional[float] = None
    trade_date: Optional[datetime] = None


class TradeResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    calendar_id: str
    name: Optional[str] = None
    amount: float
    trade_type: str
    trade_date: datetime
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    risk_to_reward: Optional[float] = None
    partials_taken: Optional[bool] = None
    session: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    images: list[dict[str, Any]] = Field(default_factory=list)
    is_temporary: Optional[bool] = None
    is_pinned: Optional[bool] = None
    is_shared: bool = False
    share_link: Optional[str] = None
    is_synced_copy: bool = False
    source_trade_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ImportResponse(BaseModel):
    imported: int
    trades: list[TradeResponse] = Field(default_factory=list)


# ─── Tags ────────────────────────────────────────────────────────────────


class RenameTagRequest(BaseModel):
    old_tag: str = Field(..., min_length=1)
    new_tag: str = Field(..., min_length=1)


class RenameTagResponse(BaseModel):
    trades_updated: int
    tags: list[str] = Field(default_factory=list)


class TagDefinitionRequest(BaseModel):
    definition: str = ""


class TagDefinitionResponse(BaseModel):
    tag_name: str
    definition: str


# ─── Sharing ─────────────────────────────────────────────────────────────


class ShareLinkResponse(BaseModel):
    share_id: str
    share_link: str
    calendar_id: str
    trade_id: Optional[str] = None


class SharedCalendarResponse(BaseModel):
    calendar: CalendarResponse
    trades: list[TradeResponse] = Field(default_factory=list)
