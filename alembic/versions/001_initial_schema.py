"""Initial schema - calendars, trades and tag definitions.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- calendars ---
    op.create_table(
        "calendars",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("account_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_daily_drawdown", sa.Float(), nullable=False, server_default="0"),
        sa.Column("weekly_target", sa.Float(), nullable=True),
        sa.Column("monthly_target", sa.Float(), nullable=True),
        sa.Column("yearly_target", sa.Float(), nullable=True),
        sa.Column("risk_per_trade", sa.Float(), nullable=True),
        sa.Column("dynamic_risk_enabled", sa.Boolean(), server_default=sa.false()),
        sa.Column("increased_risk_percentage", sa.Float(), nullable=True),
        sa.Column("profit_threshold_percentage", sa.Float(), nullable=True),
        sa.Column("duplicated_calendar", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("source_calendar_id", sa.String(36), nullable=True),
        sa.Column("linked_to_calendar_id", sa.String(36), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(128), nullable=True),
        sa.Column("auto_delete_at", sa.DateTime(), nullable=True),
        sa.Column("required_tag_groups", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("score_settings", sa.JSON(), nullable=True),
        sa.Column("hero_image_url", sa.Text(), nullable=True),
        sa.Column("share_id", sa.String(120), nullable=True),
        sa.Column("share_link", sa.Text(), nullable=True),
        sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("shared_at", sa.DateTime(), nullable=True),
        sa.Column("share_view_count", sa.Integer(), nullable=False, server_default="0"),
        # cached statistics
        sa.Column("total_trades", sa.Integer(), server_default="0"),
        sa.Column("win_count", sa.Integer(), server_default="0"),
        sa.Column("loss_count", sa.Integer(), server_default="0"),
        sa.Column("total_pnl", sa.Float(), server_default="0"),
        sa.Column("win_rate", sa.Float(), server_default="0"),
        sa.Column("profit_factor", sa.Float(), server_default="0"),
        sa.Column("max_drawdown", sa.Float(), server_default="0"),
        sa.Column("target_progress", sa.Float(), server_default="0"),
        sa.Column("pnl_performance", sa.Float(), server_default="0"),
        sa.Column("avg_win", sa.Float(), server_default="0"),
        sa.Column("avg_loss", sa.Float(), server_default="0"),
        sa.Column("current_balance", sa.Float(), nullable=True),
        sa.Column("drawdown_start_date", sa.DateTime(), nullable=True),
        sa.Column("drawdown_end_date", sa.DateTime(), nullable=True),
        sa.Column("drawdown_recovery_needed", sa.Float(), server_default="0"),
        sa.Column("drawdown_duration", sa.Integer(), server_default="0"),
        sa.Column("weekly_pnl", sa.Float(), server_default="0"),
        sa.Column("monthly_pnl", sa.Float(), server_default="0"),
        sa.Column("yearly_pnl", sa.Float(), server_default="0"),
        sa.Column("weekly_pnl_percentage", sa.Float(), server_default="0"),
        sa.Column("monthly_pnl_percentage", sa.Float(), server_default="0"),
        sa.Column("yearly_pnl_percentage", sa.Float(), server_default="0"),
        sa.Column("weekly_progress", sa.Float(), server_default="0"),
        sa.Column("monthly_progress", sa.Float(), server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("share_id"),
    )
    op.create_index("ix_calendars_user_id", "calendars", ["user_id"])
    op.create_index("ix_calendars_source_calendar_id", "calendars", ["source_calendar_id"])
    op.create_index("ix_calendars_linked_to_calendar_id", "calendars", ["linked_to_calendar_id"])

    # --- trades ---
    op.create_table(
        "trades",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("calendar_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("trade_type", sa.String(20), nullable=False),
        sa.Column("trade_date", sa.DateTime(), nullable=False),
        sa.Column("entry_price", sa.Float(), nullable=True),
        sa.Column("exit_price", sa.Float(), nullable=True),
        sa.Column("stop_loss", sa.Float(), nullable=True),
        sa.Column("take_profit", sa.Float(), nullable=True),
        sa.Column("risk_to_reward", sa.Float(), nullable=True),
        sa.Column("partials_taken", sa.Boolean(), server_default=sa.false()),
        sa.Column("session", sa.String(30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=True),
        sa.Column("is_temporary", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_pinned", sa.Boolean(), server_default=sa.false()),
        sa.Column("share_id", sa.String(200), nullable=True),
        sa.Column("share_link", sa.Text(), nullable=True),
        sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("shared_at", sa.DateTime(), nullable=True),
        sa.Column("share_view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("source_trade_id", sa.String(36), nullable=True),
        sa.Column("is_synced_copy", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["calendar_id"], ["calendars.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("share_id"),
    )
    op.create_index("ix_trades_calendar_id", "trades", ["calendar_id"])
    op.create_index("ix_trades_user_id", "trades", ["user_id"])
    op.create_index("ix_trades_trade_date", "trades", ["trade_date"])
    op.create_index("ix_trades_source_trade_id", "trades", ["source_trade_id"])
    op.create_index("ix_trades_calendar_date", "trades", ["calendar_id", "trade_date"])

    # --- tag_definitions ---
    op.create_table(
        "tag_definitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("tag_name", sa.String(200), nullable=False),
        sa.Column("definition", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "tag_name", name="uq_tag_definition_user_tag"),
    )
    op.create_index("ix_tag_definitions_user_id", "tag_definitions", ["user_id"])


def downgrade() -> None:
    op.drop_table("tag_definitions")
    op.drop_table("trades")
    op.drop_table("calendars")
