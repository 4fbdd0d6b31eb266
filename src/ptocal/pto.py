"""PTO accrual and validation.

Policy:

* The annual allowance is a step function of tenure: 168 hours (21 days)
  below five years of service, 208 hours (26 days) from five years on.
* Unused hours rolled over from last year are added to the allowance.
* An entry costs ``hours_per_day`` for every weekday in its span. Weekends
  are free; weekday holidays *inside* a span are charged, only the two
  endpoints are checked against the holiday table.
* Accrual is linear over a 365-day year, floored to whole hours.
"""

from __future__ import annotations

import datetime
import math
import uuid
from collections.abc import Iterable
from typing import NamedTuple

from ptocal.config import (
    DAYS_PER_YEAR,
    HOURS_PER_DAY,
    JUNIOR_ALLOWANCE_HOURS,
    SENIOR_ALLOWANCE_HOURS,
    SENIORITY_YEARS,
    VALID_PTO_HOURS,
)
from ptocal.dates import weekday_count
from ptocal.errors import (
    HolidayBlocked,
    InsufficientBalance,
    InvalidHourGranularity,
    PTOError,
    PTONotEnabled,
)
from ptocal.holidays import holiday_name
from ptocal.model import PTOConfig, PTOEntry

_DAY_FRACTIONS = {2: 0.25, 4: 0.5, 8: 1.0}


class PTOSummary(NamedTuple):
    """Balance of one calendar, in hours and in 8-hour days."""

    total_hours: float
    used_hours: float
    remaining_hours: float
    total_days: float
    used_days: float
    remaining_days: float
    accrual_rate: float


# ---------------------------------------------------------------------------
# Policy math
# ---------------------------------------------------------------------------


def annual_allowance_hours(years_of_service: int) -> int:
    if years_of_service < SENIORITY_YEARS:
        return JUNIOR_ALLOWANCE_HOURS
    return SENIOR_ALLOWANCE_HOURS


def annual_allowance_days(years_of_service: int) -> int:
    return annual_allowance_hours(years_of_service) // HOURS_PER_DAY


def is_valid_pto_hours(hours: object) -> bool:
    return hours in VALID_PTO_HOURS and not isinstance(hours, bool)


def hours_to_day_fraction(hours: int) -> float:
    """Convert 2/4/8 hours to a quarter, half or full day."""
    if not is_valid_pto_hours(hours):
        raise InvalidHourGranularity(hours)
    return _DAY_FRACTIONS[hours]


def total_pto_hours(start: datetime.date, end: datetime.date, hours_per_day: float) -> float:
    """Hours charged for ``[start, end]``: weekdays times *hours_per_day*."""
    return weekday_count(start, end) * hours_per_day


def make_entry(
    start: datetime.date,
    end: datetime.date,
    hours_per_day: int,
    name: str | None = None,
    entry_id: str | None = None,
) -> PTOEntry:
    """Build a :class:`PTOEntry` with a consistent ``total_hours``.

    A backwards span is swapped. Without *entry_id* a fresh id is derived
    from the span.
    """
    if end < start:
        start, end = end, start
    if entry_id is None:
        entry_id = f"{start.isoformat()}-{end.isoformat()}-{uuid.uuid4().hex[:8]}"
    return PTOEntry(
        id=entry_id,
        start_date=start,
        end_date=end,
        hours_per_day=hours_per_day,
        total_hours=total_pto_hours(start, end, hours_per_day),
        name=name,
    )


def used_hours(entries: Iterable[PTOEntry]) -> float:
    return sum(e.total_hours for e in entries)


def accrued_to_date(d: datetime.date, rollover_hours: float, total_annual_hours: float) -> int:
    """PTO earned before *d*, plus rollover, floored to whole hours.

    Only full days strictly before *d* count, so January 1 yields the
    rollover alone. The divisor is always 365.
    """
    elapsed = (d - datetime.date(d.year, 1, 1)).days
    return math.floor(rollover_hours + elapsed * total_annual_hours / DAYS_PER_YEAR)


def remaining_hours(
    entries: Iterable[PTOEntry], total_annual_hours: float, rollover_hours: float
) -> float:
    return total_annual_hours + rollover_hours - used_hours(entries)


def pto_summary(entries: Iterable[PTOEntry], config: PTOConfig) -> PTOSummary:
    total = annual_allowance_hours(config.years_of_service) + config.rollover_hours
    used = used_hours(entries)
    remaining = total - used
    return PTOSummary(
        total_hours=total,
        used_hours=used,
        remaining_hours=remaining,
        total_days=total / HOURS_PER_DAY,
        used_days=used / HOURS_PER_DAY,
        remaining_days=remaining / HOURS_PER_DAY,
        accrual_rate=total / DAYS_PER_YEAR,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def other_entries(entry: PTOEntry, entries: Iterable[PTOEntry]) -> list[PTOEntry]:
    """Entries that stay on the books if *entry* is saved.

    An existing entry with the same id, or with the same span, is replaced
    by *entry* and therefore excluded.
    """
    return [e for e in entries if e.id != entry.id and e.span != entry.span]


def validate_pto_entry(
    entry: PTOEntry,
    config: PTOConfig | None,
    entries: Iterable[PTOEntry] = (),
) -> PTOError | None:
    """Check *entry* against the PTO rules, in order.

    Returns the first violated rule as an exception instance (not raised),
    or ``None`` if the entry is acceptable. ``total_hours`` is recomputed
    from the span rather than trusted.
    """
    if config is None or not config.is_enabled:
        return PTONotEnabled()

    for d in (entry.start_date, entry.end_date):
        name = holiday_name(d)
        if name is not None:
            return HolidayBlocked(d, name)

    if not is_valid_pto_hours(entry.hours_per_day):
        return InvalidHourGranularity(entry.hours_per_day)

    requested = total_pto_hours(entry.start_date, entry.end_date, entry.hours_per_day)
    available = remaining_hours(
        other_entries(entry, entries),
        annual_allowance_hours(config.years_of_service),
        config.rollover_hours,
    )
    if requested > available:
        return InsufficientBalance(requested, available)

    return None


def check_pto_entry(
    entry: PTOEntry,
    config: PTOConfig | None,
    entries: Iterable[PTOEntry] = (),
) -> None:
    """Raise the first rule *entry* violates, if any."""
    error = validate_pto_entry(entry, config, entries)
    if error is not None:
        raise error
