"""Database engine and session factory."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from tradejournal.settings import get_settings

_engine = None


def get_engine():
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.database_echo)
    return _engine


def build_engine(url: str, echo: bool = False):
    """Create an engine for the given URL.

    SQLite connections get foreign keys enabled so trade rows follow
    their calendar on delete.
    """
    kwargs = {"echo": echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            from sqlalchemy.pool import StaticPool
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_session_factory(engine=None):
    return sessionmaker(bind=engine or get_engine(), expire_on_commit=False)


def init_db(engine=None) -> None:
    """Create all tables that do not exist yet."""
    from tradejournal.db.base import Base
    from tradejournal.db import models  # noqa: F401  (registers tables)

    Base.metadata.create_all(bind=engine or get_engine())


# Convenience alias
SessionLocal = get_session_factory
