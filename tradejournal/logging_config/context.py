"""Request Context Management.

Context variables binding request, correlation, user and calendar IDs
to every log entry emitted while a request or CLI command runs.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
_user_id_var: ContextVar[str] = ContextVar("user_id", default="")
_calendar_id_var: ContextVar[str] = ContextVar("calendar_id", default="")


def generate_request_id() -> str:
    """Generate a unique request ID using UUID4."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id_var.get()


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_user_id() -> str:
    return _user_id_var.get()


def bind_user(user_id: str) -> None:
    """Attach the authenticated user to the current context."""
    _user_id_var.set(user_id or "")


def bind_calendar(calendar_id: str) -> None:
    """Attach the calendar being operated on to the current context."""
    _calendar_id_var.set(calendar_id or "")


def get_context_dict() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary for log binding."""
    ctx = {}
    for key, var in (
        ("request_id", _request_id_var),
        ("correlation_id", _correlation_id_var),
        ("user_id", _user_id_var),
        ("calendar_id", _calendar_id_var),
    ):
        value = var.get()
        if value:
            ctx[key] = value
    return ctx


@dataclass
class RequestContext:
    """Context manager for request-scoped logging context.

    Example:
        with RequestContext(user_id="user_1"):
            logger.info("importing trades")  # includes request_id, user_id
    """

    request_id: str = ""
    correlation_id: str = ""
    user_id: str = ""
    calendar_id: str = ""
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    _tokens: list = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.request_id:
            self.request_id = generate_request_id()
        if not self.correlation_id:
            self.correlation_id = self.request_id

    def __enter__(self) -> "RequestContext":
        self._tokens = [
            (_request_id_var, _request_id_var.set(self.request_id)),
            (_correlation_id_var, _correlation_id_var.set(self.correlation_id)),
            (_user_id_var, _user_id_var.set(self.user_id)),
            (_calendar_id_var, _calendar_id_var.set(self.calendar_id)),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since context was created."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000
