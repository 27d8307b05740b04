"""Trade statistics: metrics, cached calendar stats, grids, risk and sessions."""

from tradejournal.stats.calendar_stats import (
    CalendarStats,
    apply_stats,
    compute_calendar_stats,
    get_calendar_stats,
)
from tradejournal.stats.grid import (
    DayCell,
    MonthGrid,
    MonthSummary,
    WeekRow,
    WeekSummary,
    build_month_grid,
    build_year_summary,
    cumulative_pnl_series,
    daily_pnl_frame,
)
from tradejournal.stats.metrics import (
    DrawdownResult,
    calculate_averages,
    calculate_max_drawdown,
    calculate_profit_factor,
    calculate_target_progress,
    calculate_total_pnl,
    calculate_win_rate,
)
from tradejournal.stats.risk import DynamicRiskSettings, dynamic_risk_status
from tradejournal.stats.tag_performance import TagPerformance, session_performance, tag_performance

__all__ = [
    "CalendarStats",
    "DayCell",
    "DrawdownResult",
    "DynamicRiskSettings",
    "MonthGrid",
    "MonthSummary",
    "TagPerformance",
    "WeekRow",
    "WeekSummary",
    "apply_stats",
    "build_month_grid",
    "build_year_summary",
    "calculate_averages",
    "calculate_max_drawdown",
    "calculate_profit_factor",
    "calculate_target_progress",
    "calculate_total_pnl",
    "calculate_win_rate",
    "compute_calendar_stats",
    "cumulative_pnl_series",
    "daily_pnl_frame",
    "dynamic_risk_status",
    "get_calendar_stats",
    "session_performance",
    "tag_performance",
]
