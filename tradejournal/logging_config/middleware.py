"""Request Tracing Middleware.

Every API request gets a request ID, a correlation ID (taken from the
caller or defaulting to the request ID) and a log context holding the caller
(``X-User-ID``) and the calendar named in the URL, so service logs emitted
while handling it can be traced back to one calendar. Public share views
carry no user and are logged with their share ID instead.
"""

import logging
import re
import time
from typing import Optional

from starlette.datastructures import Headers

from tradejournal.logging_config.config import DEFAULT_LOGGING_CONFIG, LoggingConfig
from tradejournal.logging_config.context import RequestContext, generate_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"
USER_ID_HEADER = "X-User-ID"

_CALENDAR_PATH = re.compile(r"/calendars/(?!trash(?:/|$))([^/]+)")
_SHARE_PATH = re.compile(r"/(?:shared|shared-calendar)/([^/]+)$")


def calendar_id_from_path(path: str) -> str:
    """Calendar ID in ``/calendars/{calendar_id}/...`` routes, or ``""``."""
    match = _CALENDAR_PATH.search(path)
    return match.group(1) if match else ""


def share_id_from_path(path: str) -> str:
    """Share ID of a public ``/shared/...`` or ``/shared-calendar/...`` view, or ``""``."""
    match = _SHARE_PATH.search(path)
    return match.group(1) if match else ""


class RequestTracingMiddleware:
    """ASGI middleware binding request, user and calendar to the log context.

    Responses echo ``X-Request-ID`` and ``X-Correlation-ID``. Completion is
    logged at INFO, client errors and slow requests at WARNING, server errors
    at ERROR.
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        self.app = app
        self.config = config or DEFAULT_LOGGING_CONFIG

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(REQUEST_ID_HEADER) or generate_request_id()
        correlation_id = headers.get(CORRELATION_ID_HEADER) or request_id
        path = scope.get("path", "")
        fields = {"method": scope.get("method", ""), "path": path}
        share_id = share_id_from_path(path)
        if share_id:
            fields["share_id"] = share_id

        should_log = path not in self.config.exclude_paths
        status_code = 500
        start_time = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                message = {
                    **message,
                    "headers": [
                        *message.get("headers", []),
                        (REQUEST_ID_HEADER.lower().encode(), request_id.encode()),
                        (CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode()),
                    ],
                }
            await send(message)

        with RequestContext(
            request_id=request_id,
            correlation_id=correlation_id,
            user_id=(headers.get(USER_ID_HEADER) or "").strip(),
            calendar_id=calendar_id_from_path(path),
        ):
            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                if should_log:
                    self._log_completion(fields, status_code, (time.perf_counter() - start_time) * 1000)

    def _log_completion(self, fields: dict, status_code: int, duration_ms: float) -> None:
        slow = duration_ms >= self.config.slow_request_ms
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400 or slow:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "Slow request completed" if slow else "Request completed",
            extra={**fields, "status_code": status_code, "duration_ms": round(duration_ms, 2)},
        )
