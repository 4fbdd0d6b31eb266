"""Typer CLI for the PTO calendar.

Every command takes the state as a token (or a full share link), applies
one operation, and prints either the new token or a report. Tokens are
the only persistence: pipe them between commands or keep them in a file.
"""

from __future__ import annotations

import datetime
import json
import logging
import sys

import typer

from ptocal import state as ops
from ptocal.codec import encode_state, load_from_token, share_url, token_from_url
from ptocal.config import DEFAULT_SHARE_BASE_URL, LOG_FORMAT, LOG_LEVEL
from ptocal.dates import parse_date
from ptocal.errors import InvalidDateFormat, PTOCalError
from ptocal.holidays import DEFAULT_HOLIDAY_YEAR, HOLIDAYS_BY_YEAR, holiday_dates
from ptocal.model import AppState, Calendar
from ptocal.pto import accrued_to_date, annual_allowance_hours, make_entry
from ptocal.report import (
    config_to_json,
    entries_to_csv,
    entries_to_json,
    format_calendar_view,
    format_state,
    format_summary,
)

app = typer.Typer(
    name="ptocal",
    help="Plan shared calendars and track PTO against your accrual policy. "
    "State travels as a compact token you can share as a link.",
    add_completion=False,
)

EXPORT_FORMATS = ["json", "csv"]

TOKEN_HELP = "State token or share link. Omit for a fresh default state."
CALENDAR_HELP = "Calendar id or name. Defaults to the first calendar."


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
) -> None:
    level = logging.DEBUG if verbose else LOG_LEVEL
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def _parse_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD date string."""
    try:
        return parse_date(value)
    except InvalidDateFormat as exc:
        raise typer.BadParameter(str(exc)) from None


def _load(token: str | None) -> AppState:
    return load_from_token(token_from_url(token) if token else None)


def _resolve(state: AppState, calendar: str | None) -> Calendar:
    if calendar is None:
        return state.calendars[0]
    return ops.find_calendar(state, calendar)


def _fail(exc: PTOCalError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


# ---------------------------------------------------------------------------
# State and calendars
# ---------------------------------------------------------------------------


@app.command()
def new(
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Year to plan. Defaults to the current year.",
    ),
    url: bool = typer.Option(False, "--url", help="Print a share link instead of a bare token."),
) -> None:
    """Create a fresh state with one empty calendar."""
    state = ops.default_state(year)
    typer.echo(share_url(state, DEFAULT_SHARE_BASE_URL) if url else encode_state(state))


@app.command()
def show(
    token: str = typer.Argument(None, help=TOKEN_HELP),
    calendar: bool = typer.Option(
        True,
        "--calendar/--no-calendar",
        help="Show a month-by-month view of each calendar.",
    ),
    output_json: bool = typer.Option(False, "--json", help="Output the state as JSON."),
) -> None:
    """Show the calendars stored in a token."""
    state = _load(token)

    if output_json:
        json.dump(_state_to_json(state), sys.stdout, indent=2)
        typer.echo()
        return

    typer.echo(format_state(state))
    if calendar:
        for cal in state.calendars:
            typer.echo(format_calendar_view(state, cal))


def _state_to_json(state: AppState) -> dict[str, object]:
    return {
        "startDate": state.start_date.isoformat(),
        "includeWeekends": state.include_weekends,
        "showToday": state.show_today,
        "calendars": [
            {
                "id": c.id,
                "name": c.name,
                "color": c.color_hex,
                "ranges": [
                    {"start": r.start.isoformat(), "end": r.end.isoformat()} for r in c.ranges
                ],
                "ptoConfig": config_to_json(c.pto_config) if c.pto_config else None,
                "ptoEntries": [
                    {
                        "id": e.id,
                        "startDate": e.start_date.isoformat(),
                        "endDate": e.end_date.isoformat(),
                        "hoursPerDay": e.hours_per_day,
                        "totalHours": e.total_hours,
                        "name": e.name,
                    }
                    for e in c.pto_entries
                ],
            }
            for c in state.calendars
        ],
    }


@app.command("add-calendar")
def add_calendar(
    name: str = typer.Argument(..., help="Name of the new calendar."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
) -> None:
    """Add a calendar and print the new token."""
    state = _load(token)
    try:
        state, _cal = ops.add_calendar(state, name)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("rename-calendar")
def rename_calendar(
    calendar: str = typer.Argument(..., help=CALENDAR_HELP),
    name: str = typer.Argument(..., help="New name."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
) -> None:
    """Rename a calendar and print the new token."""
    state = _load(token)
    try:
        state = ops.rename_calendar(state, calendar, name)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("delete-calendar")
def delete_calendar(
    calendar: str = typer.Argument(..., help=CALENDAR_HELP),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
) -> None:
    """Delete a calendar and print the new token."""
    state = _load(token)
    try:
        state = ops.delete_calendar(state, calendar)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


@app.command()
def toggle(
    date: str = typer.Argument(..., help="Date to toggle (YYYY-MM-DD)."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
) -> None:
    """Mark an unmarked day, or cut a marked day out of its range."""
    d = _parse_date(date)
    state = _load(token)
    try:
        state = ops.toggle_date(state, _resolve(state, calendar).id, d)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("add-range")
def add_range(
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Last day (YYYY-MM-DD)."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
) -> None:
    """Mark every day from START to END."""
    first, last = _parse_date(start), _parse_date(end)
    state = _load(token)
    try:
        state = ops.set_range(state, _resolve(state, calendar).id, first, last)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command()
def holidays(
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Year to list holidays for. Defaults to the current year.",
    ),
) -> None:
    """List the company holidays."""
    resolved_year = year if year is not None else datetime.date.today().year

    typer.echo(f"  Company holidays {resolved_year}")
    if resolved_year not in HOLIDAYS_BY_YEAR:
        typer.echo(f"  (no table for {resolved_year}; using {DEFAULT_HOLIDAY_YEAR} dates)")
    typer.echo()
    for d, name in holiday_dates(resolved_year):
        typer.echo(f"    {d.strftime('%a, %b %d'):>12}  {name}")


# ---------------------------------------------------------------------------
# PTO
# ---------------------------------------------------------------------------


@app.command("pto-config")
def pto_config(
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    years: int | None = typer.Option(None, "--years", help="Years of service.", min=0),
    rollover: float | None = typer.Option(
        None, "--rollover", help="Hours rolled over from last year.", min=0
    ),
    enable: bool = typer.Option(False, "--enable", help="Turn PTO tracking on."),
    disable: bool = typer.Option(False, "--disable", help="Turn PTO tracking off."),
) -> None:
    """Set a calendar's PTO policy and print the new token.

    Switching PTO on turns the calendar's marked days into full-day PTO
    entries.
    """
    if enable and disable:
        typer.echo("Error: --enable and --disable are mutually exclusive.", err=True)
        raise typer.Exit(code=1)
    enabled = True if enable else False if disable else None

    state = _load(token)
    try:
        state = ops.set_pto_config(
            state,
            _resolve(state, calendar).id,
            years_of_service=years,
            rollover_hours=rollover,
            is_enabled=enabled,
        )
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("add-pto")
def add_pto(
    start: str = typer.Argument(..., help="First day off (YYYY-MM-DD)."),
    end: str = typer.Argument(None, help="Last day off. Defaults to START."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    hours: int = typer.Option(8, "--hours", "-h", help="Hours per day: 2, 4 or 8."),
    name: str | None = typer.Option(None, "--name", "-n", help="Description."),
) -> None:
    """Log PTO and print the new token."""
    first = _parse_date(start)
    last = _parse_date(end) if end else first
    state = _load(token)
    try:
        state, _entry = ops.add_pto_entry(
            state, _resolve(state, calendar).id, make_entry(first, last, hours, name=name)
        )
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("delete-pto")
def delete_pto(
    entry_id: str = typer.Argument(..., help="Id of the PTO entry (see 'show --json')."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
) -> None:
    """Delete a PTO entry and print the new token."""
    state = _load(token)
    try:
        state = ops.delete_pto_entry(state, _resolve(state, calendar).id, entry_id)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command("toggle-pto")
def toggle_pto(
    date: str = typer.Argument(..., help="Day to toggle (YYYY-MM-DD)."),
    token: str = typer.Option(None, "--token", "-t", help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    hours: int = typer.Option(8, "--hours", "-h", help="Hours when adding: 2, 4 or 8."),
) -> None:
    """Remove the PTO covering a day, or log a single day of PTO."""
    d = _parse_date(date)
    state = _load(token)
    try:
        state, _entry = ops.toggle_pto_day(state, _resolve(state, calendar).id, d, hours)
    except PTOCalError as exc:
        raise _fail(exc) from None
    typer.echo(encode_state(state))


@app.command()
def summary(
    token: str = typer.Argument(None, help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    output_json: bool = typer.Option(False, "--json", help="Output the summary as JSON."),
) -> None:
    """Show the PTO balance of a calendar."""
    state = _load(token)
    try:
        cal = _resolve(state, calendar)
    except PTOCalError as exc:
        raise _fail(exc) from None

    balance = ops.summary_for(state, cal.id)
    if balance is None:
        typer.echo(f"Error: PTO is not enabled for {cal.name!r}.", err=True)
        raise typer.Exit(code=1)

    if output_json:
        json.dump(balance._asdict(), sys.stdout, indent=2)
        typer.echo()
        return
    typer.echo(format_summary(cal, balance, ops.pto_entries_for(state, cal.id)))


@app.command()
def accrued(
    token: str = typer.Argument(None, help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    on: str | None = typer.Option(None, "--on", help="Date to accrue up to. Defaults to today."),
) -> None:
    """Show how many PTO hours have been earned by a date."""
    d = _parse_date(on) if on else datetime.date.today()
    state = _load(token)
    try:
        cal = _resolve(state, calendar)
    except PTOCalError as exc:
        raise _fail(exc) from None

    config = ops.pto_config_for(state, cal.id)
    if config is None or not config.is_enabled:
        typer.echo(f"Error: PTO is not enabled for {cal.name!r}.", err=True)
        raise typer.Exit(code=1)

    hours = accrued_to_date(
        d, config.rollover_hours, annual_allowance_hours(config.years_of_service)
    )
    typer.echo(f"  {cal.name}: {hours}h accrued by {d.isoformat()}")


@app.command()
def export(
    token: str = typer.Argument(None, help=TOKEN_HELP),
    calendar: str | None = typer.Option(None, "--calendar", "-c", help=CALENDAR_HELP),
    fmt: str = typer.Option("json", "--format", "-f", help="Output format: json or csv."),
) -> None:
    """Export a calendar's PTO entries."""
    if fmt not in EXPORT_FORMATS:
        typer.echo(
            f"Error: Invalid format {fmt!r}. Choose from: {', '.join(EXPORT_FORMATS)}",
            err=True,
        )
        raise typer.Exit(code=1)

    state = _load(token)
    try:
        cal = _resolve(state, calendar)
    except PTOCalError as exc:
        raise _fail(exc) from None

    entries = ops.pto_entries_for(state, cal.id)
    if fmt == "csv":
        try:
            text = entries_to_csv(entries)
        except PTOCalError as exc:
            raise _fail(exc) from None
        typer.echo(text, nl=False)
        return

    config = ops.pto_config_for(state, cal.id)
    if config is None:
        typer.echo(f"Error: {cal.name!r} has no PTO configuration.", err=True)
        raise typer.Exit(code=1)
    json.dump(entries_to_json(entries, config), sys.stdout, indent=2)
    typer.echo()


@app.command()
def share(
    token: str = typer.Argument(None, help=TOKEN_HELP),
    base_url: str = typer.Option(
        DEFAULT_SHARE_BASE_URL, "--base-url", help="Origin and path of the app."
    ),
) -> None:
    """Print a share link for a token."""
    typer.echo(share_url(_load(token), base_url))


def main() -> None:
    """Entry point for the CLI."""
    app()
