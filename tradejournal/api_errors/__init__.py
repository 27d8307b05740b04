"""API Error Handling & Validation.

Structured error responses, the journal exception hierarchy, input
validators and request sanitization.
"""

from tradejournal.api_errors.config import (
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from tradejournal.api_errors.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
    TradeJournalError,
    ValidationError,
)
from tradejournal.api_errors.handlers import (
    ErrorResponse,
    create_error_response,
    handle_journal_error,
    handle_unhandled_error,
    register_exception_handlers,
)
from tradejournal.api_errors.middleware import (
    ErrorHandlingMiddleware,
    sanitize_string,
)
from tradejournal.api_errors.validators import (
    validate_amount,
    validate_date_range,
    validate_pagination,
    validate_tag,
    validate_trade_type,
)

__all__ = [
    # Config
    "ErrorCode",
    "ErrorConfig",
    "ErrorSeverity",
    # Exceptions
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "TradeJournalError",
    "ValidationError",
    # Handlers
    "ErrorResponse",
    "create_error_response",
    "handle_journal_error",
    "handle_unhandled_error",
    "register_exception_handlers",
    # Middleware
    "ErrorHandlingMiddleware",
    "sanitize_string",
    # Validators
    "validate_amount",
    "validate_date_range",
    "validate_pagination",
    "validate_tag",
    "validate_trade_type",
]
