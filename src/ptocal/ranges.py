"""Date-range algebra for a single calendar.

Every function takes a sequence of :class:`DateRange` and returns a new
tuple; inputs are never modified. Point edits (:func:`toggle_date`) keep
the ranges of a calendar pairwise disjoint. Drag edits (:func:`set_range`)
append the dragged span as-is and do not merge it with its neighbours.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable, Iterable, Sequence

from ptocal.dates import add_days
from ptocal.model import Calendar, DateRange

Ranges = tuple[DateRange, ...]


def find_range_containing(d: datetime.date, ranges: Iterable[DateRange]) -> DateRange | None:
    """Return the range whose closed interval contains *d*, or ``None``."""
    for r in ranges:
        if r.start <= d <= r.end:
            return r
    return None


def is_date_in_ranges(d: datetime.date, ranges: Iterable[DateRange]) -> bool:
    return find_range_containing(d, ranges) is not None


def toggle_date(d: datetime.date, ranges: Sequence[DateRange]) -> Ranges:
    """Flip *d* on or off.

    An uncovered date becomes a one-day range. A covered date is cut out of
    its range, leaving the part before it and the part after it (either may
    be empty, in which case it is dropped).
    """
    index = next((i for i, r in enumerate(ranges) if r.start <= d <= r.end), None)
    if index is None:
        return (*ranges, DateRange(d, d))

    owner = ranges[index]
    result = [*ranges[:index], *ranges[index + 1 :]]
    if owner.start < d:
        result.append(DateRange(owner.start, add_days(d, -1), owner.description))
    if owner.end > d:
        result.append(DateRange(add_days(d, 1), owner.end, owner.description))
    return tuple(result)


def set_range(
    start: datetime.date,
    end: datetime.date,
    ranges: Sequence[DateRange],
    description: str | None = None,
) -> Ranges:
    """Append ``[start, end]`` (swapped if given backwards)."""
    if end < start:
        start, end = end, start
    return (*ranges, DateRange(start, end, description))


def delete_range(target: DateRange, ranges: Sequence[DateRange]) -> Ranges:
    """Drop every range with the same start and end as *target*."""
    return tuple(r for r in ranges if r.span != target.span)


def consolidate_ranges(ranges: Iterable[DateRange]) -> Ranges:
    """Sort *ranges* and merge those that touch or overlap."""
    merged: list[DateRange] = []
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if merged and r.start <= add_days(merged[-1].end, 1):
            last = merged[-1]
            if r.end > last.end:
                merged[-1] = last._replace(end=r.end)
        else:
            merged.append(r)
    return tuple(merged)


def calendars_covering_date(
    d: datetime.date,
    calendars: Iterable[Calendar],
    ranges_of: Callable[[Calendar], Iterable[DateRange]] | None = None,
) -> list[Calendar]:
    """Calendars with at least one range on *d*, in list order.

    *ranges_of* maps a calendar to the ranges to test; it defaults to the
    calendar's own ``ranges``.
    """
    if ranges_of is None:
        ranges_of = _own_ranges
    return [c for c in calendars if is_date_in_ranges(d, ranges_of(c))]


def _own_ranges(calendar: Calendar) -> Ranges:
    return calendar.ranges
