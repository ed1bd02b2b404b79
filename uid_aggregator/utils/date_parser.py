"""
Date parser utility for flexible date parsing.

Handles the date shapes found in spreadsheet exports: ISO strings, common
export formats, epoch milliseconds and already-parsed datetimes.
"""

from datetime import date, datetime, timezone
from typing import Any, List, Optional

from .constants import DATE_FORMATS


def parse_date(date_string: str, formats: Optional[List[str]] = None) -> datetime:
    """
    Parse a date string using ISO parsing, then multiple format attempts.

    Timezone-aware results are converted to naive UTC so every parsed
    value can be compared with every other.

    Args:
        date_string: The date string to parse
        formats: Optional list of format strings to try.
                 Defaults to DATE_FORMATS from constants.

    Returns:
        Parsed datetime object

    Raises:
        ValueError: If no format matches the input string

    Examples:
        >>> parse_date("2024-09-15 13:00:00")
        datetime.datetime(2024, 9, 15, 13, 0)

        >>> parse_date("2024-09-15T13:00:00Z")
        datetime.datetime(2024, 9, 15, 13, 0)
    """
    if formats is None:
        formats = DATE_FORMATS

    date_string = date_string.strip()

    if not date_string:
        raise ValueError("Date string cannot be empty")

    iso_candidate = date_string[:-1] + "+00:00" if date_string.endswith("Z") else date_string
    try:
        return _to_naive_utc(datetime.fromisoformat(iso_candidate))
    except ValueError:
        pass

    for fmt in formats:
        try:
            return datetime.strptime(date_string, fmt)
        except ValueError:
            continue

    raise ValueError(
        f"Could not parse date '{date_string}'. "
        f"Tried ISO 8601 and formats: {formats[:3]}... "
        f"(and {len(formats) - 3} more)"
    )


def parse_date_safe(date_string: str, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a date string, returning default on failure instead of raising.

    Examples:
        >>> parse_date_safe("2024-09-15")
        datetime.datetime(2024, 9, 15, 0, 0)

        >>> parse_date_safe("invalid", datetime(2024, 1, 1))
        datetime.datetime(2024, 1, 1, 0, 0)
    """
    try:
        return parse_date(date_string)
    except ValueError:
        return default


def parse_date_value(value: Any) -> Optional[datetime]:
    """
    Coerce a raw cell value to a datetime.

    Accepts datetimes, dates, numbers (epoch milliseconds) and strings.
    Returns None when the value cannot be read as a date.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _to_naive_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return parsed.replace(tzinfo=None)

    if isinstance(value, str):
        return parse_date_safe(value)

    return None


def format_display_date(dt: datetime) -> str:
    """Format a date the way reports show it (DD/MM/YYYY)."""
    return dt.strftime("%d/%m/%Y")


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
