"""Calendar date helpers for YYYY-MM-DD strings"""

from datetime import date, datetime
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the value is not a real calendar date in that exact format
    """
    if not isinstance(value, str) or len(value) != 10:
        raise ValueError(f"Invalid date '{value}' (use YYYY-MM-DD)")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}' (use YYYY-MM-DD)") from e


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Validate an optional date string, returning it unchanged (or None for blanks)."""
    if value is None or value == "":
        return None
    parse_date(value)
    return value


def today_string(today: Optional[date] = None) -> str:
    """Today's date (or the given one) formatted as YYYY-MM-DD."""
    return (today or date.today()).strftime(DATE_FORMAT)
