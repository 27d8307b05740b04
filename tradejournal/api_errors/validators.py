"""Input Validation Utilities.

Validators for journal inputs: date ranges, pagination, trade amounts,
trade types and tags.
"""

import math
from datetime import date
from typing import Optional, Tuple

from tradejournal.api_errors.config import ErrorCode
from tradejournal.api_errors.exceptions import ValidationError

MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 100
MAX_TAG_LENGTH = 200

VALID_TRADE_TYPES = ("win", "loss", "breakeven")


def validate_date_range(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[Optional[date], Optional[date]]:
    """Validate that ``start_date`` is not after ``end_date``.

    Raises:
        ValidationError: If the range is inverted.
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            message=f"start_date ({start_date}) must be before end_date ({end_date})",
            error_code=ErrorCode.INVALID_DATE_RANGE,
            details=[{"field": "start_date", "issue": "Must be before end_date"}],
        )
    return start_date, end_date


def validate_pagination(
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Tuple[int, int]:
    """Validate pagination parameters.

    Args:
        page: Page number (1-indexed).
        page_size: Number of items per page.
        max_page_size: Maximum allowed page size.

    Returns:
        Tuple of (page, page_size).

    Raises:
        ValidationError: If pagination parameters are invalid.
    """
    if not isinstance(page, int) or page < 1:
        raise ValidationError(
            message="Page must be a positive integer",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page",
        )

    if not isinstance(page_size, int) or page_size < 1:
        raise ValidationError(
            message="Page size must be a positive integer",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page_size",
        )

    if page_size > max_page_size:
        raise ValidationError(
            message=f"Page size {page_size} exceeds maximum of {max_page_size}",
            error_code=ErrorCode.INVALID_PAGINATION,
            field="page_size",
        )

    return page, page_size


def validate_amount(amount, field: str = "amount") -> float:
    """Validate a P&L amount: any finite number, sign included."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError(
            message=f"{field} must be a number",
            error_code=ErrorCode.INVALID_AMOUNT,
            field=field,
        )
    if not math.isfinite(amount):
        raise ValidationError(
            message=f"{field} must be finite",
            error_code=ErrorCode.INVALID_AMOUNT,
            field=field,
        )
    return float(amount)


def validate_trade_type(trade_type: str) -> str:
    """Validate and lowercase a trade type."""
    normalized = (trade_type or "").strip().lower()
    if normalized not in VALID_TRADE_TYPES:
        raise ValidationError(
            message=f"Invalid trade type '{trade_type}'. Expected one of {', '.join(VALID_TRADE_TYPES)}",
            error_code=ErrorCode.INVALID_TRADE_TYPE,
            field="trade_type",
        )
    return normalized


def validate_tag(tag: str, field: str = "tag") -> str:
    """Validate a tag and return it stripped.

    Grouped tags (``Group:Name``) need text on both sides of the colon.
    """
    if not isinstance(tag, str) or not tag.strip():
        raise ValidationError(
            message="Tag must be a non-empty string",
            error_code=ErrorCode.INVALID_TAG,
            field=field,
        )

    tag = tag.strip()
    if len(tag) > MAX_TAG_LENGTH:
        raise ValidationError(
            message=f"Tag exceeds maximum length of {MAX_TAG_LENGTH}",
            error_code=ErrorCode.INVALID_TAG,
            field=field,
        )

    if ":" in tag:
        group, _, name = tag.partition(":")
        if not group.strip() or not name.strip():
            raise ValidationError(
                message=f"Grouped tag '{tag}' must have the form Group:Name",
                error_code=ErrorCode.INVALID_TAG,
                field=field,
            )

    return tag
