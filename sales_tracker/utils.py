# sales_tracker/utils.py
from __future__ import annotations

from sales_tracker.errors import ValidationError


def parse_month(value) -> int:
    """
    Coerce a month selector (int or numeric string such as "5" or "05")
    into an int in 1..12.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Month is required")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid month: {value!r}")
    try:
        month = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid month: {value!r}")
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    return month


def parse_positive_int(value, name: str, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if number < 1:
        raise ValidationError(f"{name} must be at least 1, got {number}")
    return number


def parse_number(value: str) -> float | None:
    """Return ``value`` as a float when it looks numeric, otherwise None."""
    try:
        number = float(value.strip())
    except (AttributeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number
