"""
Input validation functions for order filters and point updates.

All validators raise ValidationError on invalid input.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

from vinetracker.config import (
    MAX_NOTES_LENGTH,
    MAX_REASON_LENGTH,
    MAX_YEAR,
    MIN_YEAR,
)
from vinetracker.exceptions import ValidationError


# A search string of this shape is a single-day date filter
SEARCH_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Spreadsheet order numbers always start with a digit
ORDER_NUMBER_PATTERN = re.compile(r"[0-9]")


def is_date_search(value: Optional[str]) -> bool:
    """Check whether a search string has the YYYY-MM-DD shape."""
    return bool(value) and SEARCH_DATE_PATTERN.fullmatch(value) is not None


def validate_search_date(value: str, field: str = "search") -> date:
    """
    Decode a YYYY-MM-DD search string into a date.

    Args:
        value: Search string already known to have the date shape
        field: Field name for error messages

    Returns:
        Parsed date object

    Raises:
        ValidationError: If the components are not a real calendar date
    """
    if not is_date_search(value):
        raise ValidationError(field, "Expected a YYYY-MM-DD date", value)

    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(field, "Invalid calendar date", value)


def validate_year(
    value: Optional[int],
    field: str = "year",
    min_value: int = MIN_YEAR,
    max_value: int = MAX_YEAR,
) -> Optional[int]:
    """
    Validate a calendar year filter.

    Returns:
        The year, or None when not set

    Raises:
        ValidationError: If year is not an integer within range
    """
    if value is None:
        return None

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "Must be an integer", value)

    if value < min_value or value > max_value:
        raise ValidationError(field, f"Must be between {min_value} and {max_value}", value)

    return value


def validate_non_negative_int(value: Optional[int], field: str) -> Optional[int]:
    """
    Validate a pagination value (limit or offset).

    Returns:
        The value, or None when not set

    Raises:
        ValidationError: If value is not a non-negative integer
    """
    if value is None:
        return None

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "Must be an integer", value)

    if value < 0:
        raise ValidationError(field, "Must be non-negative", value)

    return value


def parse_int_param(value: Any, field: str) -> Optional[int]:
    """
    Parse a raw request parameter into an integer.

    Returns:
        Parsed integer, or None for missing/empty values

    Raises:
        ValidationError: If value is not numeric
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        raise ValidationError(field, "Must be an integer", value)

    if isinstance(value, int):
        return value

    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(field, "Must be an integer", value)


def validate_etv_factor(value: Any, field: str = "etv_factor") -> Optional[float]:
    """
    Validate an ETV factor for a point update.

    Accepts a non-negative finite number or a numeric string.
    None and "" mean clear.

    Returns:
        The factor as float, or None to clear

    Raises:
        ValidationError: If value is negative, non-finite or non-numeric
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        raise ValidationError(field, "Must be a number", value)

    if isinstance(value, str):
        try:
            factor = float(value.strip())
        except ValueError:
            raise ValidationError(field, "Must be a number", value)
    else:
        try:
            factor = float(value)
        except (TypeError, ValueError):
            raise ValidationError(field, "Must be a number", value)

    if math.isnan(factor) or math.isinf(factor):
        raise ValidationError(field, "Must be a finite number", value)

    if factor < 0:
        raise ValidationError(field, "Must be non-negative", value)

    return factor


def _validate_text(value: Any, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    if len(value) > max_length:
        raise ValidationError(
            field,
            f"Must be at most {max_length} characters",
            f"{len(value)} characters"
        )

    return value


def validate_etv_reason(value: Any, field: str = "etv_reason") -> Optional[str]:
    """
    Validate an ETV adjustment reason.

    Empty strings are normalized to None so they are stored as absent.

    Raises:
        ValidationError: If value is not a string or is too long
    """
    reason = _validate_text(value, field, MAX_REASON_LENGTH)
    return reason or None


def validate_notes(value: Any, field: str = "notes") -> Optional[str]:
    """
    Validate free-text order notes.

    Raises:
        ValidationError: If value is not a string or is too long
    """
    return _validate_text(value, field, MAX_NOTES_LENGTH)


def validate_order_number(value: Any, field: str = "number") -> str:
    """
    Validate an order number from an import row.

    Returns:
        The trimmed order number

    Raises:
        ValidationError: If the number is missing or does not start with a digit
    """
    if value is None:
        raise ValidationError(field, "Order number is required")

    number = str(value).strip()
    if not number:
        raise ValidationError(field, "Order number is required")

    if not ORDER_NUMBER_PATTERN.match(number):
        raise ValidationError(field, "Order number must start with a digit", number)

    return number


def validate_etv(value: Any, field: str = "etv") -> float:
    """
    Validate an order's estimated tax value.

    Raises:
        ValidationError: If value is non-numeric or negative
    """
    if isinstance(value, bool):
        raise ValidationError(field, "Must be a number", value)

    try:
        etv = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, "Must be a number", value)

    if math.isnan(etv) or math.isinf(etv):
        raise ValidationError(field, "Must be a finite number", value)

    if etv < 0:
        raise ValidationError(field, "Must be non-negative", value)

    return etv
