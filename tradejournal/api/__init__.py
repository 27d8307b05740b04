"""REST API for the trade journal.

Example:
    from tradejournal.api import create_app
    app = create_app()
"""

from tradejournal.api.app import create_app
from tradejournal.api.config import APIConfig, DEFAULT_API_CONFIG

__all__ = ["APIConfig", "DEFAULT_API_CONFIG", "create_app"]
