"""Calendar date helpers.

Plan dates are calendar days without a time component. They are stored and
exchanged as ISO ``YYYY-MM-DD`` strings, which sort the same way the dates do.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def to_iso_date(value: date) -> str:
    """
    Format a date as ``YYYY-MM-DD``.

    Examples:
        >>> to_iso_date(date(2025, 1, 1))
        '2025-01-01'
        >>> to_iso_date(datetime(2025, 3, 9, 23, 59))
        '2025-03-09'
    """
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_iso_date(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    return date.fromisoformat(value)


def add_days(value: date, days: int) -> date:
    """
    Offset a date by a number of days (negative goes back).

    Examples:
        >>> add_days(date(2024, 12, 31), 1)
        datetime.date(2025, 1, 1)
        >>> add_days(date(2024, 3, 1), -1)
        datetime.date(2024, 2, 29)
    """
    return value + timedelta(days=days)


def previous_day(value: date) -> date:
    """Return the day before ``value``."""
    return add_days(value, -1)


def today(reference: Optional[date] = None) -> date:
    """Return the reference date if one was injected, otherwise the server's date."""
    return reference if reference is not None else date.today()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
