"""Trade calendar journal: per-account trade calendars, tags, stats and sharing."""

__version__ = "1.0.0"
