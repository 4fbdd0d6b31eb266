"""Configuration constants and environment setup."""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Calendars
# ---------------------------------------------------------------------------

MAX_CALENDARS = 10

DEFAULT_CALENDAR_NAME = "My PTO"

# Palette shared by user calendars. Calendars store an index into this list.
GROUP_COLORS: list[str] = [
    "#24d05a",  # green
    "#f44336",  # red
    "#10a2f5",  # blue
    "#eb4888",  # pink
    "#e9bc3f",  # yellow
    "#8a35de99",
    "#10a2f599",
    "#eb488899",
    "#e9bc3f99",
    "#24d05a99",
]

HOLIDAY_CALENDAR_NAME = "Company Holidays"
HOLIDAY_CALENDAR_COLOR = "#814ffd"

# ---------------------------------------------------------------------------
# PTO policy
# ---------------------------------------------------------------------------

VALID_PTO_HOURS = (2, 4, 8)
HOURS_PER_DAY = 8
DAYS_PER_YEAR = 365

# Years-of-service tier boundary and the allowance on each side of it.
SENIORITY_YEARS = 5
JUNIOR_ALLOWANCE_HOURS = 168
SENIOR_ALLOWANCE_HOURS = 208

DEFAULT_YEARS_OF_SERVICE = 2

# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

DEFAULT_SHARE_BASE_URL = os.environ.get("PTOCAL_SHARE_URL", "https://ptocal.app/")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.environ.get("PTOCAL_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
