from __future__ import annotations

import base64
import datetime
import json
import logging

import pytest
from lzstring import LZString

from ptocal import state as ops
from ptocal.codec import (
    assign_colors,
    decode_token,
    encode_state,
    load_from_structural,
    load_from_token,
    share_url,
    state_from_structural,
    to_structural,
    token_from_url,
)
from ptocal.config import DEFAULT_CALENDAR_NAME, MAX_CALENDARS
from ptocal.errors import CodecDecodeFailure
from ptocal.model import AppState, Calendar, DateRange, PTOConfig
from ptocal.pto import make_entry


def _d(month: int, day: int) -> datetime.date:
    return datetime.date(2025, month, day)


def _busy_state() -> AppState:
    state = ops.default_state(2025)
    first = state.calendars[0].id
    state = ops.set_range(state, first, _d(2, 3), _d(2, 7))
    state = ops.toggle_date(state, first, _d(3, 14))
    state, team = ops.add_calendar(state, "Team Offsite")
    state = ops.set_pto_config(
        state, team.id, years_of_service=6, rollover_hours=12.5, is_enabled=True
    )
    state, _ = ops.add_pto_entry(state, team.id, make_entry(_d(1, 15), _d(1, 17), 8, "Ski"))
    state, _ = ops.add_pto_entry(state, team.id, make_entry(_d(8, 4), _d(8, 4), 2))
    state = ops.set_include_weekends(state, False)
    return ops.set_show_today(state, False)


def _semantic(state: AppState) -> tuple:
    return (
        state.start_date,
        state.include_weekends,
        state.show_today,
        [
            (
                {r.span for r in c.ranges},
                {(e.span, e.hours_per_day, e.total_hours, e.name) for e in c.pto_entries},
                c.pto_config,
            )
            for c in state.calendars
        ],
    )


def _legacy_token(blob: dict) -> str:
    return base64.b64encode(json.dumps(blob).encode("utf-8")).decode("ascii")


class TestEncoding:
    def test_default_state_is_minimal(self) -> None:
        assert to_structural(ops.default_state(2025)) == {"s": "2025-01-01", "g": [{"c": 1}]}

    def test_ranges_are_day_offsets(self) -> None:
        blob = to_structural(_busy_state())
        assert blob["w"] is False
        assert blob["t"] is False
        assert blob["g"][0]["r"] == [[33, 37], [72, 72]]
        team = blob["g"][1]
        assert team["n"] == "Team Offsite"
        assert team["pto"] == {"y": 6, "r": 12.5, "e": True}
        assert team["ptoEntries"][0] == {"sd": 14, "ed": 16, "hpd": 8, "n": "Ski"}
        assert "n" not in team["ptoEntries"][1]

    def test_token_is_url_safe(self) -> None:
        token = encode_state(_busy_state())
        assert set(token) <= set(
            "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        )

    def test_encoding_is_deterministic(self) -> None:
        state = _busy_state()
        assert encode_state(state) == encode_state(state)


class TestRoundTrip:
    def test_semantic_fields_survive(self) -> None:
        state = _busy_state()
        assert _semantic(decode_token(encode_state(state))) == _semantic(state)

    def test_names_and_colors_survive_without_collisions(self) -> None:
        state = _busy_state()
        decoded = decode_token(encode_state(state))
        assert [c.name for c in decoded.calendars] == [c.name for c in state.calendars]
        assert [c.color for c in decoded.calendars] == [c.color for c in state.calendars]

    def test_zero_years_of_service_preserved(self) -> None:
        state = ops.default_state(2025)
        cal = state.calendars[0].id
        state = ops.set_pto_config(state, cal, years_of_service=0, is_enabled=True)
        decoded = decode_token(encode_state(state))
        assert decoded.calendars[0].pto_config == PTOConfig(0, 0, True)

    def test_restored_entry_ids(self) -> None:
        decoded = decode_token(encode_state(_busy_state()))
        assert decoded.calendars[1].pto_entries[0].id == "14-16-restored"

    def test_other_year(self) -> None:
        state = ops.default_state(2031)
        day = datetime.date(2031, 12, 31)
        state = ops.set_range(state, state.calendars[0].id, day, day)
        decoded = decode_token(encode_state(state))
        assert decoded.start_date == datetime.date(2031, 1, 1)
        assert {r.span for r in decoded.calendars[0].ranges} == {(day, day)}

    def test_anchor_off_january_first(self) -> None:
        cal = Calendar(
            id="trips",
            name="Trips",
            color=0,
            ranges=(DateRange(_d(3, 10), _d(3, 10)),),
            pto_config=PTOConfig(is_enabled=True),
            pto_entries=(make_entry(_d(3, 11), _d(3, 12), 4),),
        )
        state = AppState(start_date=_d(3, 1), calendars=(cal,))
        decoded = decode_token(encode_state(state))
        assert decoded.start_date == _d(1, 1)
        restored = decoded.calendars[0]
        assert [r.span for r in restored.ranges] == [(_d(3, 10), _d(3, 10))]
        assert [e.span for e in restored.pto_entries] == [(_d(3, 11), _d(3, 12))]


class TestDecoding:
    def test_anchor_forced_to_january_first(self) -> None:
        state = state_from_structural({"s": "2025-06-15T12:00:00.000Z"})
        assert state.start_date == datetime.date(2025, 1, 1)

    def test_color_dedup_first_come(self) -> None:
        state = state_from_structural({"s": "2025-01-01", "g": [{"c": 0}, {"c": 0}]})
        assert [c.color for c in state.calendars] == [0, 1]

    def test_assign_colors(self) -> None:
        assert assign_colors([0, 0, None, 99, -1]) == [0, 1, 2, 3, 4]
        assert assign_colors([3, 3, 0]) == [3, 0, 1]

    def test_assign_colors_exhausted_palette(self) -> None:
        colors = assign_colors([0] * 11)
        assert colors[:10] == list(range(10))
        assert colors[10] == 10 % 10

    def test_zero_calendars_gets_default(self) -> None:
        state = state_from_structural({"s": "2025-01-01", "g": []})
        assert len(state.calendars) == 1
        assert state.calendars[0].name == DEFAULT_CALENDAR_NAME

    def test_missing_name_is_default(self) -> None:
        state = state_from_structural({"s": "2025-01-01", "g": [{"c": 4}]})
        assert state.calendars[0].name == DEFAULT_CALENDAR_NAME
        assert state.calendars[0].color == 4

    def test_backwards_offsets_swapped(self) -> None:
        state = state_from_structural({"s": "2025-01-01", "g": [{"r": [[10, 5]]}]})
        assert state.calendars[0].ranges[0].span == (_d(1, 6), _d(1, 11))

    def test_missing_pto_fields_default(self) -> None:
        state = state_from_structural({"s": "2025-01-01", "g": [{"pto": {"e": True}}]})
        assert state.calendars[0].pto_config == PTOConfig(2, 0, True)

    def test_too_many_calendars_truncated(self, caplog: pytest.LogCaptureFixture) -> None:
        blob = {"s": "2025-01-01", "g": [{"n": f"c{i}"} for i in range(MAX_CALENDARS + 3)]}
        with caplog.at_level(logging.WARNING, logger="ptocal.codec"):
            state = state_from_structural(blob)
        assert len(state.calendars) == MAX_CALENDARS
        assert "Dropping 3 calendars" in caplog.text

    def test_entries_with_invalid_hours_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        blob = {
            "s": "2025-01-01",
            "g": [
                {
                    "c": 0,
                    "pto": {"y": 3, "r": 0, "e": True},
                    "ptoEntries": [
                        {"sd": 13, "ed": 13, "hpd": 3},
                        {"sd": 20, "ed": 24, "hpd": -40},
                        {"sd": 14, "ed": 14, "hpd": 8},
                    ],
                }
            ],
        }
        with caplog.at_level(logging.WARNING, logger="ptocal.schema"):
            state = state_from_structural(blob)
        (entry,) = state.calendars[0].pto_entries
        assert entry.span == (_d(1, 15), _d(1, 15))
        assert entry.total_hours == 8
        assert caplog.text.count("Dropping invalid CompactPTOEntry") == 2

    def test_verbose_entries_with_invalid_hours_dropped(self) -> None:
        blob = {
            "startDate": "2025-01-01",
            "eventGroups": [
                {
                    "name": "Team",
                    "ptoEntries": [
                        {"startDate": "2025-05-05", "endDate": "2025-05-05", "hoursPerDay": 6},
                        {"startDate": "2025-05-06", "endDate": "2025-05-06", "hoursPerDay": 2},
                    ],
                }
            ],
        }
        (entry,) = state_from_structural(blob).calendars[0].pto_entries
        assert entry.hours_per_day == 2

    def test_verbose_form(self) -> None:
        blob = {
            "startDate": "2025-03-15T00:00:00.000Z",
            "includeWeekends": False,
            "eventGroups": [
                {
                    "id": "abc",
                    "name": "Team",
                    "color": "#F44336",
                    "ranges": [{"start": "2025-02-01", "end": "2025-02-03"}],
                    "ptoConfig": {"yearsOfService": 7, "rolloverHours": 8, "isEnabled": True},
                    "ptoEntries": [
                        {
                            "id": "e1",
                            "startDate": "2025-05-05",
                            "endDate": "2025-05-06",
                            "hoursPerDay": 4,
                        }
                    ],
                }
            ],
        }
        state = state_from_structural(blob)
        assert state.start_date == datetime.date(2025, 1, 1)
        assert not state.include_weekends
        cal = state.calendars[0]
        assert (cal.id, cal.name, cal.color) == ("abc", "Team", 1)
        assert cal.ranges[0].span == (_d(2, 1), _d(2, 3))
        assert cal.pto_config == PTOConfig(7, 8, True)
        assert cal.pto_entries[0].id == "e1"
        assert cal.pto_entries[0].total_hours == 8

    def test_unrecognised_blob_raises(self) -> None:
        with pytest.raises(CodecDecodeFailure):
            state_from_structural({"hello": "world"})
        with pytest.raises(CodecDecodeFailure):
            state_from_structural([1, 2, 3])
        with pytest.raises(CodecDecodeFailure):
            state_from_structural({"s": "not a date"})


class TestLegacyAndFallback:
    def test_legacy_base64_token(self) -> None:
        token = _legacy_token({"s": "2025-01-01", "g": [{"n": "Team", "c": 2, "r": [[0, 1]]}]})
        state = load_from_token(token)
        assert state.calendars[0].name == "Team"
        assert state.calendars[0].ranges[0].span == (_d(1, 1), _d(1, 2))

    def test_legacy_base64_verbose_token(self) -> None:
        token = _legacy_token({"startDate": "2024-01-01", "eventGroups": [{"name": "Old"}]})
        state = load_from_token(token)
        assert state.start_date == datetime.date(2024, 1, 1)
        assert state.calendars[0].name == "Old"

    def test_garbage_token_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="ptocal.codec"):
            state = load_from_token("%%%not-a-token")
        assert len(state.calendars) == 1
        assert state.calendars[0].name == DEFAULT_CALENDAR_NAME
        assert "Failed to decode state token" in caplog.text

    def test_empty_token_is_default(self) -> None:
        assert load_from_token(None).start_date.year == datetime.date.today().year
        assert len(load_from_token("").calendars) == 1

    def test_web_app_lz_string_token(self) -> None:
        blob = {"s": "2025-01-01T00:00:00.000Z", "g": [{"n": "Team", "c": 3, "r": [[9, 9]]}]}
        token = LZString().compressToEncodedURIComponent(json.dumps(blob))
        state = load_from_token(token)
        assert state.calendars[0].name == "Team"
        assert state.calendars[0].color == 3
        assert state.calendars[0].ranges[0].span == (_d(1, 10), _d(1, 10))

    def test_decode_token_is_strict(self) -> None:
        with pytest.raises(CodecDecodeFailure):
            decode_token("AAAA")


class TestStructuralLoading:
    def test_mapping_and_json_text(self) -> None:
        blob = to_structural(_busy_state())
        assert _semantic(load_from_structural(blob)) == _semantic(_busy_state())
        assert _semantic(load_from_structural(json.dumps(blob))) == _semantic(_busy_state())

    def test_bad_input_falls_back(self) -> None:
        assert len(load_from_structural(None).calendars) == 1
        assert load_from_structural("{not json").calendars[0].name == DEFAULT_CALENDAR_NAME
        assert load_from_structural({"s": 12}).calendars[0].name == DEFAULT_CALENDAR_NAME


class TestShareUrl:
    def test_share_url_replaces_fragment(self) -> None:
        state = _busy_state()
        url = share_url(state, "https://example.test/plan#stale")
        assert url == f"https://example.test/plan#{encode_state(state)}"

    def test_token_from_url(self) -> None:
        state = _busy_state()
        token = encode_state(state)
        assert token_from_url(share_url(state, "https://example.test/")) == token
        assert token_from_url(f"  {token}\n") == token
