"""Calendar-date helpers.

All dates are plain ``datetime.date`` values: no time of day, no timezone.
The canonical text form is ``YYYY-MM-DD``.
"""

from __future__ import annotations

import calendar
import datetime
import re
from collections.abc import Iterator

from ptocal.errors import InvalidDateFormat

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_ONE_DAY = datetime.timedelta(days=1)


def parse_date(value: str) -> datetime.date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises ``InvalidDateFormat`` for anything else, including well-formed
    text naming a day that does not exist (``2025-02-30``).
    """
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise InvalidDateFormat(value)
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise InvalidDateFormat(value) from None


def format_date(d: datetime.date) -> str:
    return d.isoformat()


def coerce_date(value: datetime.date | str) -> datetime.date:
    """Accept either a ``date`` or its ISO text form."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return parse_date(value)


def add_days(d: datetime.date, days: int) -> datetime.date:
    return d + datetime.timedelta(days=days)


def days_between(start: datetime.date, end: datetime.date) -> int:
    """Signed day difference ``end - start``."""
    return (end - start).days


def is_weekend(d: datetime.date) -> bool:
    return d.weekday() >= 5


def iter_days(start: datetime.date, end: datetime.date) -> Iterator[datetime.date]:
    """Yield every date from *start* to *end*, inclusive."""
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY


def weekday_count(start: datetime.date, end: datetime.date) -> int:
    """Number of Monday-Friday dates in ``[start, end]`` (0 when end < start)."""
    return sum(1 for d in iter_days(start, end) if not is_weekend(d))


def year_start(value: datetime.date | int) -> datetime.date:
    """January 1 of the year of *value* (a date or a year number)."""
    year = value if isinstance(value, int) else value.year
    return datetime.date(year, 1, 1)


def calendar_dates(anchor: datetime.date) -> list[datetime.date]:
    """Every date of the twelve months starting at *anchor*'s month."""
    end_year = anchor.year + (anchor.month + 10) // 12
    end_month = (anchor.month + 10) % 12 + 1
    last_day = calendar.monthrange(end_year, end_month)[1]
    return list(iter_days(anchor, datetime.date(end_year, end_month, last_day)))
