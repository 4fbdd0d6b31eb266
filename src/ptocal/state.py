"""Operations on the application state.

The state is an immutable :class:`AppState` value owned by the caller.
Every mutation here takes a state and returns a new one; a rejected
mutation raises and the caller's state is left untouched.

PTO entries are the single source of truth for time off. The range that
shows an entry on the calendar is derived (:func:`display_ranges`), so
deleting an entry also removes it from the grid.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Iterable

from ptocal import ranges as range_ops
from ptocal.config import DEFAULT_CALENDAR_NAME, GROUP_COLORS, HOURS_PER_DAY, MAX_CALENDARS
from ptocal.dates import year_start
from ptocal.errors import (
    CalendarLimitReached,
    CalendarNotFound,
    EntryNotFound,
    NoWorkdaysInSpan,
    PTONotEnabled,
    ReadOnlyCalendar,
)
from ptocal.holidays import holiday_calendar
from ptocal.model import AppState, Calendar, DateRange, PTOConfig, PTOEntry
from ptocal.pto import PTOSummary, check_pto_entry, make_entry, pto_summary

logger = logging.getLogger(__name__)

_UNCHANGED = object()

# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def new_calendar_id() -> str:
    return uuid.uuid4().hex[:12]


def first_unused_color(used: Iterable[int]) -> int | None:
    """Lowest palette index not in *used*, or ``None`` if all are taken."""
    taken = set(used)
    for index in range(len(GROUP_COLORS)):
        if index not in taken:
            return index
    return None


def default_calendar(color: int = 0) -> Calendar:
    return Calendar(id=new_calendar_id(), name=DEFAULT_CALENDAR_NAME, color=color)


def default_state(year: int | None = None) -> AppState:
    """A fresh state anchored on January 1 with a single empty calendar."""
    if year is None:
        year = datetime.date.today().year
    return AppState(start_date=year_start(year), calendars=(default_calendar(1),))


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def display_calendars(state: AppState) -> list[Calendar]:
    """The holiday calendar for the anchor year followed by the user calendars."""
    return [holiday_calendar(state.year), *state.calendars]


def find_calendar(state: AppState, key: str) -> Calendar:
    """Look up a calendar by id, falling back to a case-insensitive name match."""
    candidates = display_calendars(state)
    for calendar in candidates:
        if calendar.id == key:
            return calendar
    lowered = key.casefold()
    for calendar in candidates:
        if calendar.name.casefold() == lowered:
            return calendar
    raise CalendarNotFound(key)


def _writable(state: AppState, key: str) -> Calendar:
    calendar = find_calendar(state, key)
    if calendar.is_special:
        raise ReadOnlyCalendar(calendar.name)
    return calendar


def _replace_calendar(state: AppState, updated: Calendar) -> AppState:
    return state._replace(
        calendars=tuple(updated if c.id == updated.id else c for c in state.calendars)
    )


def display_ranges(calendar: Calendar) -> tuple[DateRange, ...]:
    """Plain ranges plus one derived range per PTO entry."""
    return (*calendar.ranges, *(e.as_range() for e in calendar.pto_entries))


def ranges_containing(state: AppState, d: datetime.date) -> list[Calendar]:
    """Calendars (holidays first) with something on *d*."""
    return range_ops.calendars_covering_date(d, display_calendars(state), display_ranges)


# ---------------------------------------------------------------------------
# View settings
# ---------------------------------------------------------------------------


def set_start_date(state: AppState, d: datetime.date) -> AppState:
    """Move the view to the year of *d* (always anchored on January 1)."""
    return state._replace(start_date=year_start(d))


def set_include_weekends(state: AppState, include: bool) -> AppState:
    return state._replace(include_weekends=include)


def set_show_today(state: AppState, show: bool) -> AppState:
    return state._replace(show_today=show)


# ---------------------------------------------------------------------------
# Calendars
# ---------------------------------------------------------------------------


def add_calendar(state: AppState, name: str) -> tuple[AppState, Calendar]:
    """Append a calendar with the first color no other calendar uses."""
    if len(state.calendars) >= MAX_CALENDARS:
        raise CalendarLimitReached(MAX_CALENDARS)
    color = first_unused_color(c.color for c in state.calendars)
    if color is None:
        raise CalendarLimitReached(MAX_CALENDARS)
    calendar = Calendar(id=new_calendar_id(), name=name, color=color)
    return state._replace(calendars=(*state.calendars, calendar)), calendar


def rename_calendar(state: AppState, calendar_id: str, name: str) -> AppState:
    calendar = _writable(state, calendar_id)
    return _replace_calendar(state, calendar._replace(name=name))


def delete_calendar(state: AppState, calendar_id: str) -> AppState:
    calendar = _writable(state, calendar_id)
    return state._replace(calendars=tuple(c for c in state.calendars if c.id != calendar.id))


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def toggle_date(state: AppState, calendar_id: str, d: datetime.date) -> AppState:
    calendar = _writable(state, calendar_id)
    return _replace_calendar(
        state, calendar._replace(ranges=range_ops.toggle_date(d, calendar.ranges))
    )


def set_range(
    state: AppState,
    calendar_id: str,
    start: datetime.date,
    end: datetime.date,
    description: str | None = None,
) -> AppState:
    calendar = _writable(state, calendar_id)
    return _replace_calendar(
        state,
        calendar._replace(ranges=range_ops.set_range(start, end, calendar.ranges, description)),
    )


def delete_range(state: AppState, calendar_id: str, target: DateRange) -> AppState:
    calendar = _writable(state, calendar_id)
    return _replace_calendar(
        state, calendar._replace(ranges=range_ops.delete_range(target, calendar.ranges))
    )


# ---------------------------------------------------------------------------
# PTO
# ---------------------------------------------------------------------------


def is_pto_enabled(state: AppState, calendar_id: str) -> bool:
    config = find_calendar(state, calendar_id).pto_config
    return config is not None and config.is_enabled


def set_pto_config(
    state: AppState,
    calendar_id: str,
    *,
    years_of_service: int | None = None,
    rollover_hours: float | None = None,
    is_enabled: bool | None = None,
) -> AppState:
    """Update a calendar's PTO policy; unspecified fields keep their value.

    Switching PTO from off to on converts the calendar's plain ranges into
    full-day PTO entries appended to the existing ones: touching ranges are
    merged first and spans without a weekday are dropped.
    """
    calendar = _writable(state, calendar_id)
    current = calendar.pto_config or PTOConfig()
    was_enabled = calendar.pto_config is not None and calendar.pto_config.is_enabled
    config = PTOConfig(
        years_of_service=current.years_of_service if years_of_service is None else years_of_service,
        rollover_hours=current.rollover_hours if rollover_hours is None else rollover_hours,
        is_enabled=was_enabled if is_enabled is None else is_enabled,
    )
    updated = calendar._replace(pto_config=config)

    if config.is_enabled and not was_enabled and calendar.ranges:
        merged = range_ops.consolidate_ranges(calendar.ranges)
        converted = [make_entry(r.start, r.end, HOURS_PER_DAY, name=r.description) for r in merged]
        converted = [e for e in converted if e.total_hours > 0]
        logger.info(
            "Converted %d ranges of %r into %d PTO entries (%g hours)",
            len(calendar.ranges),
            calendar.name,
            len(converted),
            sum(e.total_hours for e in converted),
        )
        updated = updated._replace(ranges=(), pto_entries=(*calendar.pto_entries, *converted))

    return _replace_calendar(state, updated)


def add_pto_entry(state: AppState, calendar_id: str, entry: PTOEntry) -> tuple[AppState, PTOEntry]:
    """Validate and store *entry*, returning the new state and the saved entry.

    The saved entry gets a fresh id and a recomputed ``total_hours``. An
    existing entry with the same span is replaced.
    """
    calendar = _writable(state, calendar_id)
    check_pto_entry(entry, calendar.pto_config, calendar.pto_entries)
    saved = make_entry(entry.start_date, entry.end_date, entry.hours_per_day, name=entry.name)
    if saved.total_hours == 0:
        raise NoWorkdaysInSpan(saved.start_date, saved.end_date)
    kept = tuple(e for e in calendar.pto_entries if e.span != saved.span)
    return _replace_calendar(state, calendar._replace(pto_entries=(*kept, saved))), saved


def update_pto_entry(
    state: AppState,
    calendar_id: str,
    entry_id: str,
    *,
    start_date: datetime.date | None = None,
    end_date: datetime.date | None = None,
    hours_per_day: int | None = None,
    name: str | None | object = _UNCHANGED,
) -> AppState:
    """Change fields of an existing entry; the result is validated like a new one.

    Omitted fields keep their value. Pass ``name=None`` to clear the name.
    """
    calendar = _writable(state, calendar_id)
    existing = _find_entry(calendar, entry_id)
    candidate = make_entry(
        start_date or existing.start_date,
        end_date or existing.end_date,
        existing.hours_per_day if hours_per_day is None else hours_per_day,
        name=existing.name if name is _UNCHANGED else name,
        entry_id=existing.id,
    )
    check_pto_entry(candidate, calendar.pto_config, calendar.pto_entries)
    if candidate.total_hours == 0:
        raise NoWorkdaysInSpan(candidate.start_date, candidate.end_date)
    entries = tuple(
        candidate if e.id == entry_id else e
        for e in calendar.pto_entries
        if e.id == entry_id or e.span != candidate.span
    )
    return _replace_calendar(state, calendar._replace(pto_entries=entries))


def delete_pto_entry(state: AppState, calendar_id: str, entry_id: str) -> AppState:
    calendar = _writable(state, calendar_id)
    _find_entry(calendar, entry_id)
    entries = tuple(e for e in calendar.pto_entries if e.id != entry_id)
    return _replace_calendar(state, calendar._replace(pto_entries=entries))


def clear_pto_entries(state: AppState, calendar_id: str) -> AppState:
    calendar = _writable(state, calendar_id)
    return _replace_calendar(state, calendar._replace(pto_entries=()))


def toggle_pto_day(
    state: AppState, calendar_id: str, d: datetime.date, hours_per_day: int = HOURS_PER_DAY
) -> tuple[AppState, PTOEntry | None]:
    """Click-to-toggle in PTO mode.

    If an entry covers *d* it is removed and ``None`` is returned with the
    new state. Otherwise a single-day entry is added and returned.
    """
    calendar = _writable(state, calendar_id)
    if calendar.pto_config is None or not calendar.pto_config.is_enabled:
        raise PTONotEnabled(calendar.name)
    for entry in calendar.pto_entries:
        if entry.start_date <= d <= entry.end_date:
            return delete_pto_entry(state, calendar.id, entry.id), None
    return add_pto_entry(state, calendar.id, make_entry(d, d, hours_per_day))


def _find_entry(calendar: Calendar, entry_id: str) -> PTOEntry:
    for entry in calendar.pto_entries:
        if entry.id == entry_id:
            return entry
    raise EntryNotFound(entry_id, calendar.name)


# ---------------------------------------------------------------------------
# Read-only accessors for reports and exports
# ---------------------------------------------------------------------------


def pto_entries_for(state: AppState, calendar_id: str) -> list[PTOEntry]:
    """Entries that cost hours, sorted by start date."""
    calendar = find_calendar(state, calendar_id)
    return sorted((e for e in calendar.pto_entries if e.total_hours > 0), key=lambda e: e.span)


def pto_config_for(state: AppState, calendar_id: str) -> PTOConfig | None:
    return find_calendar(state, calendar_id).pto_config


def summary_for(state: AppState, calendar_id: str) -> PTOSummary | None:
    """Balance summary, or ``None`` when PTO is not enabled for the calendar."""
    config = pto_config_for(state, calendar_id)
    if config is None or not config.is_enabled:
        return None
    return pto_summary(pto_entries_for(state, calendar_id), config)
