"""FastAPI dependencies for database sessions and caller identity.

Authentication is handled by the identity provider in front of the API,
which forwards the authenticated user in the ``X-User-ID`` header.
"""

from typing import Iterator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from tradejournal.api_errors import AuthenticationError
from tradejournal.db.engine import get_session_factory
from tradejournal.logging_config import bind_user
from tradejournal.trades.images import ImageStore

_session_factory = None
_image_store: Optional[ImageStore] = None


def get_db() -> Iterator[Session]:
    """Yield a session per request. Tests override this dependency."""
    global _session_factory
    if _session_factory is None:
        _session_factory = get_session_factory()
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()


def get_image_store() -> ImageStore:
    """Return (or create) the process-wide image store."""
    global _image_store
    if _image_store is None:
        _image_store = ImageStore()
    return _image_store


async def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Require the caller's user id on protected endpoints.

    Raises:
        AuthenticationError: The ``X-User-ID`` header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("X-User-ID header is required")
    user_id = x_user_id.strip()
    bind_user(user_id)
    return user_id
