"""Exceptions raised by the calendar, PTO and codec layers."""

from __future__ import annotations

import datetime


class PTOCalError(Exception):
    """Base class for every error this package raises."""


class InvalidDateFormat(PTOCalError, ValueError):
    """A date string is not a valid ``YYYY-MM-DD`` calendar date."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid date format {value!r}. Use YYYY-MM-DD.")


class CalendarNotFound(PTOCalError, LookupError):
    def __init__(self, calendar_id: str):
        self.calendar_id = calendar_id
        super().__init__(f"No calendar matches {calendar_id!r}")


class EntryNotFound(PTOCalError, LookupError):
    def __init__(self, entry_id: str, calendar_name: str):
        self.entry_id = entry_id
        super().__init__(f"No PTO entry {entry_id!r} in calendar {calendar_name!r}")


class CalendarLimitReached(PTOCalError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Cannot have more than {limit} calendars")


class ReadOnlyCalendar(PTOCalError):
    """A mutation was requested against a special (read-only) calendar."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Calendar {name!r} is read-only")


# ---------------------------------------------------------------------------
# PTO validation
# ---------------------------------------------------------------------------


class PTOError(PTOCalError):
    """A PTO request violates one of the business rules."""


class PTONotEnabled(PTOError):
    def __init__(self, calendar_name: str | None = None):
        self.calendar_name = calendar_name
        super().__init__("PTO is not enabled for this calendar")


class HolidayBlocked(PTOError):
    def __init__(self, date: datetime.date, holiday: str | None = None):
        self.date = date
        self.holiday = holiday
        label = f" ({holiday})" if holiday else ""
        super().__init__(f"Cannot log PTO on company holiday {date.isoformat()}{label}")


class InvalidHourGranularity(PTOError, ValueError):
    def __init__(self, hours: object):
        self.hours = hours
        super().__init__(f"PTO hours per day must be 2, 4, or 8 hours (got {hours!r})")


class InsufficientBalance(PTOError):
    def __init__(self, requested_hours: float, remaining_hours: float):
        self.requested_hours = requested_hours
        self.remaining_hours = remaining_hours
        super().__init__(
            f"Exceeds remaining PTO balance ({remaining_hours:g}h available, "
            f"{requested_hours:g}h requested)"
        )


class NoWorkdaysInSpan(PTOError):
    """The requested span contains only weekend days, so it costs 0 hours."""

    def __init__(self, start: datetime.date, end: datetime.date):
        self.start = start
        self.end = end
        super().__init__(
            f"No weekdays between {start.isoformat()} and {end.isoformat()}; "
            "PTO cannot be requested on weekends"
        )


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class CodecDecodeFailure(PTOCalError):
    """A token or structural blob could not be decoded.

    Only raised between the codec's internal decoder strategies; the public
    loaders absorb it and fall back to the default state.
    """
