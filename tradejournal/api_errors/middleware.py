"""Error Handling Middleware & Input Sanitization.

ASGI middleware that turns exceptions escaping the routers into JSON
error envelopes, plus the string sanitizer applied to free-text fields
(trade names, notes, tag definitions).
"""

import html
import json
import logging
import time
from typing import Any, Dict, Optional

from tradejournal.api_errors.config import DEFAULT_ERROR_CONFIG, ErrorConfig
from tradejournal.api_errors.exceptions import TradeJournalError
from tradejournal.api_errors.handlers import ErrorResponse, handle_journal_error, handle_unhandled_error

logger = logging.getLogger(__name__)


def sanitize_string(value: Any, max_length: int = 10000) -> str:
    """HTML-escape and truncate a user supplied string.

    Args:
        value: Raw input; non-strings are converted with ``str``.
        max_length: Maximum allowed length after escaping.

    Returns:
        Sanitized string.
    """
    if not isinstance(value, str):
        return str(value)[:max_length]

    sanitized = html.escape(value, quote=True)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
    return sanitized


class ErrorHandlingMiddleware:
    """ASGI middleware that catches exceptions not handled by the routers.

    Every error leaves the service as a structured JSON body rather than a
    raw stack trace.
    """

    def __init__(self, app: Any, config: Optional[ErrorConfig] = None):
        self.app = app
        self.config = config or DEFAULT_ERROR_CONFIG

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        response_started = False

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except TradeJournalError as exc:
            if response_started:
                raise
            await self._send_error(send, handle_journal_error(exc, self.config), exc.headers)
        except Exception as exc:
            if response_started:
                raise
            await self._send_error(send, handle_unhandled_error(exc, self.config))
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > self.config.slow_request_ms:
                logger.warning(
                    "Slow request: %s took %.1fms",
                    scope.get("path", "unknown"),
                    duration_ms,
                    extra={"duration_ms": round(duration_ms, 2)},
                )

    async def _send_error(
        self,
        send: Any,
        error_response: ErrorResponse,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        body = json.dumps(error_response.to_dict()).encode("utf-8")
        response_headers = [
            [b"content-type", b"application/json"],
            [b"content-length", str(len(body)).encode()],
        ]
        for key, value in (headers or {}).items():
            response_headers.append([key.encode(), value.encode()])

        await send({
            "type": "http.response.start",
            "status": error_response.status_code,
            "headers": response_headers,
        })
        await send({"type": "http.response.body", "body": body})
