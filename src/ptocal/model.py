"""Immutable domain types shared by every layer."""

from __future__ import annotations

import datetime
from typing import NamedTuple

from ptocal.config import DEFAULT_YEARS_OF_SERVICE, GROUP_COLORS, HOLIDAY_CALENDAR_COLOR


class DateRange(NamedTuple):
    """An inclusive span of calendar days."""

    start: datetime.date
    end: datetime.date
    description: str | None = None

    def contains(self, d: datetime.date) -> bool:
        return self.start <= d <= self.end

    @property
    def span(self) -> tuple[datetime.date, datetime.date]:
        return (self.start, self.end)


class PTOConfig(NamedTuple):
    """PTO policy for one calendar."""

    years_of_service: int = DEFAULT_YEARS_OF_SERVICE
    rollover_hours: float = 0
    is_enabled: bool = False


class PTOEntry(NamedTuple):
    """A block of time off logged against a calendar's PTO balance.

    ``total_hours`` is always ``hours_per_day`` times the number of weekdays
    in the span; build entries with :func:`ptocal.pto.make_entry` so it stays
    that way.
    """

    id: str
    start_date: datetime.date
    end_date: datetime.date
    hours_per_day: int
    total_hours: float
    name: str | None = None

    @property
    def span(self) -> tuple[datetime.date, datetime.date]:
        return (self.start_date, self.end_date)

    def as_range(self) -> DateRange:
        """The range that represents this entry on a calendar grid."""
        return DateRange(self.start_date, self.end_date, self.name)


class Calendar(NamedTuple):
    """A named, colored set of ranges (an event group)."""

    id: str
    name: str
    color: int
    ranges: tuple[DateRange, ...] = ()
    pto_config: PTOConfig | None = None
    pto_entries: tuple[PTOEntry, ...] = ()
    is_special: bool = False

    @property
    def color_hex(self) -> str | None:
        if self.is_special:
            return HOLIDAY_CALENDAR_COLOR
        if 0 <= self.color < len(GROUP_COLORS):
            return GROUP_COLORS[self.color]
        return None


class AppState(NamedTuple):
    """The complete, caller-owned application state."""

    start_date: datetime.date
    include_weekends: bool = True
    show_today: bool = True
    calendars: tuple[Calendar, ...] = ()

    @property
    def year(self) -> int:
        return self.start_date.year
