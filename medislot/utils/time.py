"""Date and time-of-day helpers.

Windows and reservations use the provider's local calendar date and
wall-clock time. No timezone conversion is applied.
"""

from datetime import date, datetime, time
from typing import Callable

from medislot.core.errors import INVALID_DATE, INVALID_TIME, ValidationError

Clock = Callable[[], datetime]

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def local_now() -> datetime:
    """Get the current local wall-clock datetime (naive)."""
    return datetime.now()


def parse_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string.

    Args:
        value: Date string or an already parsed date

    Returns:
        Parsed date

    Raises:
        ValidationError: If the string is not a calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r}", code=INVALID_DATE)


def parse_time(value: str | time) -> time:
    """Parse an ``HH:MM`` string to a minute-granularity time.

    Raises:
        ValidationError: If the string is not a valid time of day
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time: {value!r}", code=INVALID_TIME)


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)
