"""Error codes, HTTP status mapping and severity levels for the journal."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class ErrorCode(Enum):
    """Error codes returned in the ``error.code`` field of API responses."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TRADE_TYPE = "INVALID_TRADE_TYPE"
    INVALID_TAG = "INVALID_TAG"
    INVALID_PAGINATION = "INVALID_PAGINATION"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    MISSING_REQUIRED_TAGS = "MISSING_REQUIRED_TAGS"
    INVALID_IMPORT_FILE = "INVALID_IMPORT_FILE"

    # Authentication errors (401)
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"

    # Authorization errors (403)
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Not found errors (404)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CALENDAR_NOT_FOUND = "CALENDAR_NOT_FOUND"
    TRADE_NOT_FOUND = "TRADE_NOT_FOUND"
    SHARE_NOT_FOUND = "SHARE_NOT_FOUND"

    # Conflict errors (409)
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    CALENDAR_NOT_IN_TRASH = "CALENDAR_NOT_IN_TRASH"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for error logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_DATE_RANGE: 400,
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.INVALID_TRADE_TYPE: 400,
    ErrorCode.INVALID_TAG: 400,
    ErrorCode.INVALID_PAGINATION: 400,
    ErrorCode.MISSING_REQUIRED_FIELD: 400,
    ErrorCode.MISSING_REQUIRED_TAGS: 400,
    ErrorCode.INVALID_IMPORT_FILE: 400,
    ErrorCode.AUTHENTICATION_REQUIRED: 401,
    ErrorCode.INSUFFICIENT_PERMISSIONS: 403,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.CALENDAR_NOT_FOUND: 404,
    ErrorCode.TRADE_NOT_FOUND: 404,
    ErrorCode.SHARE_NOT_FOUND: 404,
    ErrorCode.RESOURCE_CONFLICT: 409,
    ErrorCode.CALENDAR_NOT_IN_TRASH: 409,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.STORAGE_ERROR: 500,
}

ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.INVALID_DATE_RANGE: ErrorSeverity.LOW,
    ErrorCode.INVALID_AMOUNT: ErrorSeverity.LOW,
    ErrorCode.INVALID_TRADE_TYPE: ErrorSeverity.LOW,
    ErrorCode.INVALID_TAG: ErrorSeverity.LOW,
    ErrorCode.INVALID_PAGINATION: ErrorSeverity.LOW,
    ErrorCode.MISSING_REQUIRED_FIELD: ErrorSeverity.LOW,
    ErrorCode.MISSING_REQUIRED_TAGS: ErrorSeverity.LOW,
    ErrorCode.INVALID_IMPORT_FILE: ErrorSeverity.LOW,
    ErrorCode.AUTHENTICATION_REQUIRED: ErrorSeverity.MEDIUM,
    ErrorCode.INSUFFICIENT_PERMISSIONS: ErrorSeverity.MEDIUM,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.CALENDAR_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.TRADE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.SHARE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.RESOURCE_CONFLICT: ErrorSeverity.MEDIUM,
    ErrorCode.CALENDAR_NOT_IN_TRASH: ErrorSeverity.LOW,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.DATABASE_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.STORAGE_ERROR: ErrorSeverity.HIGH,
}


@dataclass
class ErrorConfig:
    """Configuration for API error handling."""

    include_request_id: bool = True
    log_all_errors: bool = True
    suppress_internal_details: bool = True
    slow_request_ms: float = 5000.0


DEFAULT_ERROR_CONFIG = ErrorConfig()
