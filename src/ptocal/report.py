"""Text, JSON and CSV renderings of calendars and PTO balances.

Everything here reads state through the accessors in :mod:`ptocal.state`;
nothing is validated or changed.
"""

from __future__ import annotations

import calendar as _calendar
import csv
import datetime
import io
from collections import defaultdict

from ptocal.config import HOURS_PER_DAY
from ptocal.dates import is_weekend, iter_days
from ptocal.holidays import holiday_dates, holiday_name
from ptocal.model import AppState, Calendar, PTOConfig, PTOEntry
from ptocal.pto import PTOSummary, annual_allowance_hours, hours_to_day_fraction
from ptocal.state import display_ranges

EXPORT_VERSION = "1.0"

_W = 64


def _span_label(start: datetime.date, end: datetime.date) -> str:
    if start == end:
        return start.strftime("%a, %b %d")
    return f"{start.strftime('%a, %b %d')} -> {end.strftime('%a, %b %d')}"


def _fmt(value: float) -> str:
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def format_state(state: AppState) -> str:
    """Return a short overview of every calendar in *state*."""
    lines = [
        "=" * _W,
        "  PTO CALENDAR",
        "=" * _W,
        f"  Year:             {state.year}",
        f"  Weekends shown:   {'yes' if state.include_weekends else 'no'}",
        f"  Highlight today:  {'yes' if state.show_today else 'no'}",
        f"  Calendars:        {len(state.calendars)}",
        "",
    ]
    for cal in state.calendars:
        if cal.pto_config is not None and cal.pto_config.is_enabled:
            pto = f", PTO on ({len(cal.pto_entries)} entries)"
        else:
            pto = ""
        lines.append(f"    [{cal.color_hex or '-'}] {cal.name}: {len(cal.ranges)} ranges{pto}")
        lines.append(f"      id: {cal.id}")
    return "\n".join(lines)


def format_summary(
    cal: Calendar,
    summary: PTOSummary,
    entries: list[PTOEntry],
) -> str:
    """Return a human-readable PTO balance for *cal*, grouped by month."""
    config = cal.pto_config or PTOConfig()
    annual = annual_allowance_hours(config.years_of_service)
    lines: list[str] = [
        "",
        "=" * _W,
        f"  PTO SUMMARY: {cal.name}",
        "=" * _W,
        f"  Years of service: {config.years_of_service}",
        f"  Annual PTO:       {annual}h ({_fmt(annual / HOURS_PER_DAY)} days)",
        f"  Rollover:         {_fmt(config.rollover_hours)}h",
        f"  Total available:  {_fmt(summary.total_hours)}h ({_fmt(summary.total_days)} days)",
        f"  Used:             {_fmt(summary.used_hours)}h ({_fmt(summary.used_days)} days)",
        f"  Remaining:        {_fmt(summary.remaining_hours)}h "
        f"({_fmt(summary.remaining_days)} days)",
        f"  Accrual rate:     {summary.accrual_rate:.3f}h per day",
        "",
    ]

    by_month: dict[tuple[int, int], list[PTOEntry]] = defaultdict(list)
    for entry in entries:
        by_month[(entry.start_date.year, entry.start_date.month)].append(entry)

    if not by_month:
        lines.append("  No PTO logged.")
        return "\n".join(lines)

    lines.append("  Entries by month:")
    lines.append("  " + "-" * (_W - 4))
    for year, month in sorted(by_month):
        month_entries = by_month[(year, month)]
        month_total = sum(e.total_hours for e in month_entries)
        lines.append(
            f"  {_calendar.month_name[month]} {year}: "
            f"{_fmt(month_total)}h ({_fmt(month_total / HOURS_PER_DAY)} days)"
        )
        for e in month_entries:
            label = _span_label(e.start_date, e.end_date)
            lines.append(f"    -> {label}  {_fmt(e.total_hours)}h  {e.name or '-'}")
        lines.append("")
    return "\n".join(lines)


def format_calendar_view(state: AppState, cal: Calendar) -> str:
    """Return a month-by-month calendar of *cal* for the state's year.

    Only months with a marked day or a holiday are shown.
    """
    year = state.year
    pto_days: set[datetime.date] = set()
    for entry in cal.pto_entries:
        pto_days.update(d for d in iter_days(entry.start_date, entry.end_date) if not is_weekend(d))
    marked: set[datetime.date] = set()
    for r in display_ranges(cal):
        marked.update(iter_days(r.start, r.end))

    active_months = {d.month for d in marked | pto_days if d.year == year}
    active_months.update(d.month for d, _name in holiday_dates(year))

    if not active_months:
        return ""

    lines: list[str] = [
        "",
        f"  Calendar View {year}: {cal.name}",
        "  Legend: P=PTO  X=Marked  H=Holiday",
        "",
    ]

    weeks = _calendar.Calendar(firstweekday=0)

    for month in sorted(active_months):
        lines.append(f"  {_calendar.month_name[month]} {year}")
        lines.append("  Mo  Tu  We  Th  Fr  Sa  Su")

        row = ""
        for day_num, weekday in weeks.itermonthdays2(year, month):
            if day_num == 0:
                row += "    "
            else:
                d = datetime.date(year, month, day_num)
                if d in pto_days:
                    cell = f" {day_num:>2}P"
                elif d in marked:
                    cell = f" {day_num:>2}X"
                elif holiday_name(d) is not None:
                    cell = f" {day_num:>2}H"
                else:
                    cell = f"  {day_num:>2}"
                row += cell

            if weekday == 6:
                lines.append(row)
                row = ""

        if row.strip():
            lines.append(row)
        lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


def config_to_json(config: PTOConfig) -> dict[str, object]:
    return {
        "yearsOfService": config.years_of_service,
        "rolloverHours": config.rollover_hours,
        "isEnabled": config.is_enabled,
    }


def entries_to_json(
    entries: list[PTOEntry],
    config: PTOConfig,
    exported_at: datetime.datetime | None = None,
) -> dict[str, object]:
    """JSON-ready export of a calendar's PTO entries and policy."""
    if exported_at is None:
        exported_at = datetime.datetime.now(datetime.timezone.utc)
    return {
        "ptoEntries": [
            {
                "id": e.id,
                "startDate": e.start_date.isoformat(),
                "endDate": e.end_date.isoformat(),
                "hoursPerDay": e.hours_per_day,
                "totalHours": e.total_hours,
                "name": e.name,
            }
            for e in entries
        ],
        "config": config_to_json(config),
        "exportDate": exported_at.isoformat(),
        "version": EXPORT_VERSION,
    }


def entries_to_csv(entries: list[PTOEntry]) -> str:
    """One row per charged weekday, for payroll import."""
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["Date", "Hours", "Description", "Day Fraction"])
    for entry in entries:
        fraction = hours_to_day_fraction(entry.hours_per_day)
        for d in iter_days(entry.start_date, entry.end_date):
            if is_weekend(d):
                continue
            writer.writerow([d.isoformat(), entry.hours_per_day, entry.name or "", fraction])
    return out.getvalue()
