from __future__ import annotations

import datetime

from ptocal import state as ops
from ptocal.model import AppState, PTOConfig
from ptocal.pto import make_entry
from ptocal.report import (
    EXPORT_VERSION,
    entries_to_csv,
    entries_to_json,
    format_calendar_view,
    format_state,
    format_summary,
)


def _d(month: int, day: int) -> datetime.date:
    return datetime.date(2025, month, day)


def _pto_state() -> tuple[AppState, str]:
    state = ops.default_state(2025)
    cal = state.calendars[0].id
    state = ops.set_pto_config(state, cal, years_of_service=3, rollover_hours=20, is_enabled=True)
    state, _ = ops.add_pto_entry(state, cal, make_entry(_d(1, 15), _d(1, 15), 8, "Dentist"))
    state, _ = ops.add_pto_entry(state, cal, make_entry(_d(2, 10), _d(2, 10), 4))
    return state, cal


class TestFormatState:
    def test_lists_calendars(self) -> None:
        state = ops.default_state(2025)
        state, team = ops.add_calendar(state, "Team")
        text = format_state(state)
        assert "PTO CALENDAR" in text
        assert "Year:             2025" in text
        assert "My PTO: 0 ranges" in text
        assert f"id: {team.id}" in text

    def test_pto_flag(self) -> None:
        state, _ = _pto_state()
        assert "PTO on (2 entries)" in format_state(state)


class TestFormatSummary:
    def test_balances_and_months(self) -> None:
        state, cal = _pto_state()
        summary = ops.summary_for(state, cal)
        assert summary is not None
        text = format_summary(state.calendars[0], summary, ops.pto_entries_for(state, cal))
        assert "PTO SUMMARY: My PTO" in text
        assert "Total available:  188h (23.5 days)" in text
        assert "Used:             12h (1.5 days)" in text
        assert "Remaining:        176h (22 days)" in text
        assert "January 2025: 8h (1 days)" in text
        assert "February 2025: 4h (0.5 days)" in text
        assert "Dentist" in text

    def test_no_entries(self) -> None:
        state = ops.default_state(2025)
        cal = state.calendars[0].id
        state = ops.set_pto_config(state, cal, is_enabled=True)
        summary = ops.summary_for(state, cal)
        assert summary is not None
        assert "No PTO logged." in format_summary(state.calendars[0], summary, [])


class TestCalendarView:
    def test_marks_pto_ranges_and_holidays(self) -> None:
        state, cal = _pto_state()
        state, other = ops.add_calendar(state, "Trips")
        state = ops.set_range(state, other.id, _d(3, 3), _d(3, 4))
        text = format_calendar_view(state, ops.find_calendar(state, cal))
        assert "Calendar View 2025: My PTO" in text
        assert " 15P" in text
        assert "  4H" in text  # July 4
        assert "March 2025" not in text

        trips = format_calendar_view(state, ops.find_calendar(state, other.id))
        assert "March 2025" in trips
        assert "  3X" in trips


class TestExports:
    def test_json_export(self) -> None:
        state, cal = _pto_state()
        exported_at = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)
        data = entries_to_json(
            ops.pto_entries_for(state, cal), ops.pto_config_for(state, cal), exported_at
        )
        assert data["version"] == EXPORT_VERSION
        assert data["exportDate"] == "2025-03-01T12:00:00+00:00"
        assert data["config"] == {"yearsOfService": 3, "rolloverHours": 20, "isEnabled": True}
        first = data["ptoEntries"][0]
        assert first["startDate"] == "2025-01-15"
        assert first["hoursPerDay"] == 8
        assert first["totalHours"] == 8
        assert first["name"] == "Dentist"

    def test_json_export_default_timestamp(self) -> None:
        data = entries_to_json([], PTOConfig())
        assert data["ptoEntries"] == []
        assert isinstance(data["exportDate"], str)

    def test_csv_one_row_per_weekday(self) -> None:
        entry = make_entry(_d(3, 7), _d(3, 10), 4, "Trip")  # Fri to Mon
        lines = entries_to_csv([entry]).splitlines()
        assert lines == [
            '"Date","Hours","Description","Day Fraction"',
            '"2025-03-07","4","Trip","0.5"',
            '"2025-03-10","4","Trip","0.5"',
        ]

    def test_csv_empty(self) -> None:
        assert entries_to_csv([]) == '"Date","Hours","Description","Day Fraction"\n'
