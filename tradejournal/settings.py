"""Centralized settings for the trade journal.

Uses pydantic-settings to load from environment variables (prefixed TJ_)
with defaults suitable for a local single-user install.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Trade journal settings loaded from environment variables."""

    # --- Database ---
    database_url: str = "sqlite:///tradejournal.db"
    database_echo: bool = False

    # --- Sharing ---
    share_base_url: str = "http://localhost:8000"

    # --- Calendar lifecycle ---
    trash_retention_days: int = 30
    sync_window_hours: int = 24

    # --- Tag propagation ---
    tag_update_batch_size: int = 100

    # --- Statistics ---
    stats_percentage_cap: float = 999.99
    profit_factor_cap: float = 9999.9999
    profit_factor_no_loss: float = 999.0

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Storage ---
    image_storage_dir: str = "storage/images"

    # --- Import / export ---
    export_date_format: str = "%m/%d/%Y"

    model_config = {
        "env_prefix": "TJ_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
