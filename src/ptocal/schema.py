"""Structural forms of the application state.

Two shapes are understood:

* the **compact** form written by :func:`ptocal.codec.to_structural`, with
  one- and two-letter keys and ranges stored as day offsets from the year
  anchor;
* the **verbose** form written by early releases, which spelled out every
  field and stored absolute ISO dates and hex colors.

Every optional field has an explicit default so that partial or older
blobs load field by field instead of being rejected wholesale. Unknown
keys are ignored.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ptocal.config import DEFAULT_YEARS_OF_SERVICE, VALID_PTO_HOURS

logger = logging.getLogger(__name__)


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _check_hours(value: int) -> int:
    if value not in VALID_PTO_HOURS:
        msg = f"hours per day must be one of {VALID_PTO_HOURS}, got {value}"
        raise ValueError(msg)
    return value


def _valid_items(model: type[BaseModel], items: Any) -> Any:
    """Validate list items one by one, dropping (and logging) the bad ones."""
    if not isinstance(items, list):
        return items
    kept = []
    for item in items:
        try:
            kept.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid %s %r: %s", model.__name__, item, exc.errors()[0]["msg"]
            )
    return kept


# ---------------------------------------------------------------------------
# Compact form
# ---------------------------------------------------------------------------


class CompactPTOConfig(_Lenient):
    y: int = Field(DEFAULT_YEARS_OF_SERVICE, ge=0, description="years of service")
    r: float = Field(0, ge=0, description="rollover hours")
    e: bool = Field(False, description="PTO enabled")


class CompactPTOEntry(_Lenient):
    sd: int = Field(description="start, days from the anchor")
    ed: int = Field(description="end, days from the anchor")
    hpd: int = Field(description="hours per day")
    n: str | None = None

    @field_validator("hpd")
    @classmethod
    def check_hours(cls, value: int) -> int:
        return _check_hours(value)


class CompactCalendar(_Lenient):
    n: str | None = None
    c: int | None = None
    r: list[tuple[int, int]] = Field(default_factory=list)
    pto: CompactPTOConfig | None = None
    pto_entries: list[CompactPTOEntry] | None = Field(None, alias="ptoEntries")

    @field_validator("pto_entries", mode="before")
    @classmethod
    def drop_invalid_entries(cls, value: Any) -> Any:
        return _valid_items(CompactPTOEntry, value)


class CompactState(_Lenient):
    s: str = Field(description="ISO year anchor")
    w: bool = True
    t: bool = True
    g: list[CompactCalendar] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Verbose (legacy) form
# ---------------------------------------------------------------------------


class VerboseRange(_Lenient):
    start: str
    end: str
    description: str | None = None


class VerbosePTOConfig(_Lenient):
    years_of_service: int = Field(DEFAULT_YEARS_OF_SERVICE, ge=0, alias="yearsOfService")
    rollover_hours: float = Field(0, ge=0, alias="rolloverHours")
    is_enabled: bool = Field(False, alias="isEnabled")


class VerbosePTOEntry(_Lenient):
    id: str | None = None
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")
    hours_per_day: int = Field(alias="hoursPerDay")
    name: str | None = None

    @field_validator("hours_per_day")
    @classmethod
    def check_hours(cls, value: int) -> int:
        return _check_hours(value)


class VerboseCalendar(_Lenient):
    id: str | None = None
    name: str | None = None
    color: str | None = None
    ranges: list[VerboseRange] = Field(default_factory=list)
    pto_config: VerbosePTOConfig | None = Field(None, alias="ptoConfig")
    pto_entries: list[VerbosePTOEntry] | None = Field(None, alias="ptoEntries")

    @field_validator("pto_entries", mode="before")
    @classmethod
    def drop_invalid_entries(cls, value: Any) -> Any:
        return _valid_items(VerbosePTOEntry, value)


class VerboseState(_Lenient):
    start_date: str = Field(alias="startDate")
    include_weekends: bool = Field(True, alias="includeWeekends")
    show_today: bool = Field(True, alias="showToday")
    event_groups: list[VerboseCalendar] = Field(default_factory=list, alias="eventGroups")
