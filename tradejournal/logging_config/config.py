"""Logging Configuration.

Level and format come from the journal settings (``TJ_LOG_LEVEL`` and
``TJ_LOG_FORMAT``). The remaining fields tune the request and operation
timing logs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tradejournal.settings import Settings


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """JSON lines for the API server, coloured text for the CLI."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    service_name: str = "tradejournal"
    # service operations: tag propagation, stats recalculation
    slow_threshold_ms: float = 1000.0
    # whole requests; spreadsheet imports and exports run long
    slow_request_ms: float = 3000.0
    exclude_paths: list[str] = field(default_factory=lambda: ["/health"])
    quiet_loggers: tuple[str, ...] = ("sqlalchemy.engine", "alembic", "multipart", "httpx")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LoggingConfig":
        """Build a config from settings; unknown level or format names fall back to the defaults."""
        settings = settings or Settings()
        level = settings.log_level.upper()
        fmt = settings.log_format.lower()
        return cls(
            level=LogLevel(level) if level in LogLevel.__members__ else LogLevel.INFO,
            format=LogFormat(fmt) if fmt in {f.value for f in LogFormat} else LogFormat.JSON,
        )


DEFAULT_LOGGING_CONFIG = LoggingConfig()
