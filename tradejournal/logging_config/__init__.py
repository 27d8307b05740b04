"""Structured Logging & Request Tracing.

JSON or console logging, request/user/calendar context propagation and
performance timing for the trade journal.
"""

from tradejournal.logging_config.config import LogFormat, LoggingConfig, LogLevel
from tradejournal.logging_config.context import (
    RequestContext,
    bind_calendar,
    bind_user,
    generate_request_id,
)
from tradejournal.logging_config.performance import PerformanceTimer, log_performance
from tradejournal.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "RequestContext",
    "PerformanceTimer",
    "bind_calendar",
    "bind_user",
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "log_performance",
]
