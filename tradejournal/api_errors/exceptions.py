"""Exception hierarchy for the trade journal.

Services raise these; the API layer turns them into JSON error envelopes
with the status code mapped from the error code.
"""

from typing import Any, Dict, List, Optional

from tradejournal.api_errors.config import ERROR_STATUS_MAP, ErrorCode


class TradeJournalError(Exception):
    """Base exception for all trade journal errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = ERROR_STATUS_MAP.get(error_code, 500)
        self.details = details or []
        self.headers = headers or {}


class ValidationError(TradeJournalError):
    """Raised when input fails validation."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
    ):
        if field and not details:
            details = [{"field": field, "issue": message}]
        super().__init__(message, error_code, details)
        self.field = field


class AuthenticationError(TradeJournalError):
    """Raised when no caller identity is supplied."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_REQUIRED,
    ):
        super().__init__(message, error_code)


class AuthorizationError(TradeJournalError):
    """Raised when the caller does not own the calendar or trade."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        error_code: ErrorCode = ErrorCode.INSUFFICIENT_PERMISSIONS,
    ):
        super().__init__(message, error_code)


class NotFoundError(TradeJournalError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        details = []
        if resource_type or resource_id:
            details = [{"resource_type": resource_type, "resource_id": resource_id}]
        super().__init__(message, error_code, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(TradeJournalError):
    """Raised when an action conflicts with existing state."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
    ):
        super().__init__(message, error_code)


class StorageError(TradeJournalError):
    """Raised when image storage cannot be read or written."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        error_code: ErrorCode = ErrorCode.STORAGE_ERROR,
    ):
        super().__init__(message, error_code)
