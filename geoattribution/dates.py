"""
Date range parsing for the attribute command.

A range is written "FROM,TO", e.g. "2012-01-01,2013-01-01". Each side is an
ISO date or one of the keywords "today", "yesterday" and "now".
"""

from datetime import date, datetime, time, timedelta


class InvalidDateRangeError(ValueError):
    """Raised when a dates range argument cannot be used."""


def parse_date(value: str, today: date | None = None) -> date:
    """Parse one side of a date range."""
    value = value.strip().lower()
    today = today or date.today()

    if value in ("today", "now"):
        return today
    if value == "yesterday":
        return today - timedelta(days=1)

    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateRangeError(f"Invalid date: {value!r}") from None


def parse_date_range(value: str, today: date | None = None) -> tuple[date, date]:
    """
    Parse a "FROM,TO" dates range.

    Raises:
        InvalidDateRangeError: unless exactly two parseable dates are given
    """
    parts = (value or "").split(",")
    if len(parts) != 2:
        raise InvalidDateRangeError(f"Invalid date range supplied: {value}")

    start, end = (parse_date(part, today) for part in parts)
    return start, end


def range_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Datetime bounds of the half-open range [start, end)."""
    return datetime.combine(start, time.min), datetime.combine(end, time.min)
