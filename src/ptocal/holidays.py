"""Company holiday table.

Holidays are keyed by year, then by ``(month, day)``. A year missing from
the table falls back to the :data:`DEFAULT_HOLIDAY_YEAR` table, so PTO
validation keeps blocking the usual company days in years nobody has
entered yet.
"""

from __future__ import annotations

import datetime

from ptocal.config import HOLIDAY_CALENDAR_NAME
from ptocal.model import Calendar, DateRange

DEFAULT_HOLIDAY_YEAR = 2025

HOLIDAYS_BY_YEAR: dict[int, dict[tuple[int, int], str]] = {
    2025: {
        (1, 1): "New Year's Day",
        (1, 20): "MLK Jr. Day",
        (5, 26): "Memorial Day",
        (6, 19): "Juneteenth",
        (7, 3): "Independence Day Eve",
        (7, 4): "Independence Day",
        (9, 1): "Labor Day",
        (10, 13): "Indigenous People's Day",
        (11, 27): "Thanksgiving",
        (11, 28): "Day after Thanksgiving",
        (12, 25): "Christmas",
        # Gift days
        (12, 26): "Company Gift Day",
        (12, 27): "Company Gift Day",
        (12, 30): "Company Gift Day",
        (12, 31): "Company Gift Day",
    },
    2026: {
        (1, 1): "New Year's Day",
        (1, 19): "MLK Jr. Day",
        (5, 25): "Memorial Day",
        (6, 19): "Juneteenth",
        (7, 2): "Independence Day Eve",
        (7, 3): "Independence Day (observed)",
        (9, 7): "Labor Day",
        (10, 12): "Indigenous People's Day",
        (11, 26): "Thanksgiving",
        (11, 27): "Day after Thanksgiving",
        (12, 25): "Christmas",
        # Gift days
        (12, 28): "Company Gift Day",
        (12, 29): "Company Gift Day",
        (12, 30): "Company Gift Day",
        (12, 31): "Company Gift Day",
    },
}


def holidays_for_year(year: int) -> dict[tuple[int, int], str]:
    """Return the ``(month, day) -> name`` table used for *year*."""
    table = HOLIDAYS_BY_YEAR.get(year)
    if table is None:
        return HOLIDAYS_BY_YEAR[DEFAULT_HOLIDAY_YEAR]
    return table


def holiday_name(d: datetime.date) -> str | None:
    """Name of the holiday on *d*, or ``None``."""
    return holidays_for_year(d.year).get((d.month, d.day))


def is_holiday(d: datetime.date) -> bool:
    return (d.month, d.day) in holidays_for_year(d.year)


def holiday_dates(year: int) -> list[tuple[datetime.date, str]]:
    """``(date, name)`` pairs for *year*, sorted by date.

    Month-days from the fallback table that do not exist in *year*
    (February 29) are skipped.
    """
    result: list[tuple[datetime.date, str]] = []
    for (month, day), name in holidays_for_year(year).items():
        try:
            result.append((datetime.date(year, month, day), name))
        except ValueError:
            continue
    return sorted(result)


def holiday_calendar(year: int) -> Calendar:
    """The read-only calendar showing every holiday of *year*."""
    return Calendar(
        id=f"holidays-{year}",
        name=HOLIDAY_CALENDAR_NAME,
        color=-1,
        ranges=tuple(DateRange(d, d, name) for d, name in holiday_dates(year)),
        is_special=True,
    )
