"""PTO Calendar.

Mark days on shared calendars, track paid time off against a
seniority-based accrual policy, and share the whole state as a compact
URL-safe token.
"""

from ptocal.codec import encode_state, load_from_structural, load_from_token, share_url
from ptocal.errors import PTOCalError, PTOError
from ptocal.model import AppState, Calendar, DateRange, PTOConfig, PTOEntry
from ptocal.pto import PTOSummary, make_entry, pto_summary, validate_pto_entry
from ptocal.state import (
    add_calendar,
    add_pto_entry,
    default_state,
    pto_config_for,
    pto_entries_for,
    ranges_containing,
    set_range,
    summary_for,
    toggle_date,
)

__all__ = [
    "AppState",
    "Calendar",
    "DateRange",
    "PTOCalError",
    "PTOConfig",
    "PTOEntry",
    "PTOError",
    "PTOSummary",
    "add_calendar",
    "add_pto_entry",
    "default_state",
    "encode_state",
    "load_from_structural",
    "load_from_token",
    "make_entry",
    "pto_config_for",
    "pto_entries_for",
    "pto_summary",
    "ranges_containing",
    "set_range",
    "share_url",
    "summary_for",
    "toggle_date",
    "validate_pto_entry",
]
