"""Exception Handlers & Error Response Builder.

Builds the ``{"error": {...}}`` envelope returned for every failed request
and registers the FastAPI handlers that produce it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tradejournal.api_errors.config import (
    DEFAULT_ERROR_CONFIG,
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from tradejournal.api_errors.exceptions import TradeJournalError
from tradejournal.logging_config.context import get_request_id

logger = logging.getLogger(__name__)


@dataclass
class ErrorResponse:
    """Structured error response envelope."""

    code: str
    message: str
    status_code: int = 500
    details: List[Dict[str, Any]] = field(default_factory=list)
    request_id: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp,
            }
        }
        if self.details:
            body["error"]["details"] = self.details
        if self.request_id:
            body["error"]["request_id"] = self.request_id
        return body


def create_error_response(
    error_code: ErrorCode,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    request_id: Optional[str] = None,
    status_code: Optional[int] = None,
) -> ErrorResponse:
    """Build an ErrorResponse, resolving the status from the error code."""
    return ErrorResponse(
        code=error_code.value,
        message=message,
        status_code=status_code or ERROR_STATUS_MAP.get(error_code, 500),
        details=details or [],
        request_id=request_id,
    )


def _log_error(error_code: ErrorCode, message: str, status_code: int, config: ErrorConfig) -> None:
    if not config.log_all_errors:
        return

    severity = ERROR_SEVERITY_MAP.get(error_code, ErrorSeverity.MEDIUM)
    log_msg = "API Error [%s] (%s): %s"

    if severity == ErrorSeverity.CRITICAL:
        logger.critical(log_msg, error_code.value, status_code, message)
    elif severity == ErrorSeverity.HIGH:
        logger.error(log_msg, error_code.value, status_code, message)
    elif severity == ErrorSeverity.MEDIUM:
        logger.warning(log_msg, error_code.value, status_code, message)
    else:
        logger.info(log_msg, error_code.value, status_code, message)


def handle_journal_error(exc: TradeJournalError, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    """Convert a TradeJournalError into an ErrorResponse."""
    config = config or DEFAULT_ERROR_CONFIG
    request_id = get_request_id() if config.include_request_id else None

    _log_error(exc.error_code, exc.message, exc.status_code, config)

    return create_error_response(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
        status_code=exc.status_code,
    )


def handle_unhandled_error(exc: Exception, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    """Handle any unexpected exception with a safe 500 response."""
    config = config or DEFAULT_ERROR_CONFIG
    request_id = get_request_id() if config.include_request_id else None

    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    message = "An internal error occurred"
    if not config.suppress_internal_details:
        message = f"{type(exc).__name__}: {exc}"

    return create_error_response(
        error_code=ErrorCode.INTERNAL_ERROR,
        message=message,
        request_id=request_id,
    )


def register_exception_handlers(app: Any, config: Optional[ErrorConfig] = None) -> None:
    """Register the journal exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance.
        config: Error handling configuration.
    """
    from fastapi.responses import JSONResponse

    config = config or DEFAULT_ERROR_CONFIG
    app.state.error_config = config

    async def _journal_error_handler(request, exc: TradeJournalError):
        error_response = handle_journal_error(exc, config)
        return JSONResponse(
            status_code=error_response.status_code,
            content=error_response.to_dict(),
            headers=exc.headers or None,
        )

    app.add_exception_handler(TradeJournalError, _journal_error_handler)
    logger.info("Registered trade journal exception handlers")
