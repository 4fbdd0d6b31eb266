"""Shareable state tokens.

The application state is projected onto a compact structural form
(:func:`to_structural`), serialized as JSON, compressed with zlib and
written as unpadded URL-safe base64 (:func:`encode_state`). A share link
is ``<origin><path>#<token>``; the fragment never reaches a server.

Decoding never raises. Tokens are tried against an ordered list of token
decoders (current compressed form, the plain-base64 links of early
releases, then the lz-string links of the web app), and each decoded blob
against an ordered list of structural decoders (compact form, then the
legacy verbose form). If nothing matches, the default state is returned
and the failure is logged.
"""

from __future__ import annotations

import base64
import datetime
import json
import logging
import urllib.parse
import zlib
from collections.abc import Callable, Mapping
from typing import Any

from lzstring import LZString

from ptocal.config import DEFAULT_CALENDAR_NAME, DEFAULT_SHARE_BASE_URL, GROUP_COLORS, MAX_CALENDARS
from ptocal.dates import add_days, days_between, parse_date, year_start
from ptocal.errors import CodecDecodeFailure
from ptocal.model import AppState, Calendar, DateRange, PTOConfig
from ptocal.pto import make_entry
from ptocal.schema import CompactCalendar, CompactState, VerboseCalendar, VerboseState
from ptocal.state import default_calendar, default_state, first_unused_color, new_calendar_id

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def to_structural(state: AppState) -> dict[str, Any]:
    """Project *state* onto the compact structural form.

    Flags equal to their default, empty lists, the default calendar name
    and missing PTO data are left out.
    """
    anchor = year_start(state.start_date)
    blob: dict[str, Any] = {"s": anchor.isoformat()}
    if not state.include_weekends:
        blob["w"] = False
    if not state.show_today:
        blob["t"] = False
    if state.calendars:
        blob["g"] = [_calendar_to_compact(c, anchor) for c in state.calendars]
    return blob


def _calendar_to_compact(calendar: Calendar, anchor: datetime.date) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if calendar.name != DEFAULT_CALENDAR_NAME:
        out["n"] = calendar.name
    out["c"] = calendar.color if 0 <= calendar.color < len(GROUP_COLORS) else -1
    if calendar.ranges:
        out["r"] = [
            [days_between(anchor, r.start), days_between(anchor, r.end)] for r in calendar.ranges
        ]
    if calendar.pto_config is not None:
        cfg = calendar.pto_config
        out["pto"] = {"y": cfg.years_of_service, "r": cfg.rollover_hours, "e": cfg.is_enabled}
    if calendar.pto_entries:
        entries = []
        for e in calendar.pto_entries:
            item: dict[str, Any] = {
                "sd": days_between(anchor, e.start_date),
                "ed": days_between(anchor, e.end_date),
                "hpd": e.hours_per_day,
            }
            if e.name is not None:
                item["n"] = e.name
            entries.append(item)
        out["ptoEntries"] = entries
    return out


def encode_state(state: AppState) -> str:
    """Return the URL-safe token for *state*."""
    text = json.dumps(to_structural(state), separators=(",", ":"), ensure_ascii=False)
    packed = zlib.compress(text.encode("utf-8"), 9)
    return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")


def share_url(state: AppState, base_url: str = DEFAULT_SHARE_BASE_URL) -> str:
    """``<base_url>#<token>``; any fragment already on *base_url* is replaced."""
    base, _fragment = urllib.parse.urldefrag(base_url)
    return f"{base}#{encode_state(state)}"


def token_from_url(value: str) -> str:
    """Extract the token from a share link; a bare token is returned as-is."""
    value = value.strip()
    if "#" in value:
        value = value.split("#", 1)[1]
    return urllib.parse.unquote(value)


# ---------------------------------------------------------------------------
# Token decoders
# ---------------------------------------------------------------------------


def _pad(token: str) -> str:
    return token + "=" * (-len(token) % 4)


def _decode_compressed(token: str) -> Any:
    try:
        raw = base64.urlsafe_b64decode(_pad(token))
        return json.loads(zlib.decompress(raw).decode("utf-8"))
    except (ValueError, zlib.error) as exc:
        raise CodecDecodeFailure(f"not a compressed token: {exc}") from exc


def _decode_legacy_base64(token: str) -> Any:
    """Links from early releases carried the JSON as plain base64."""
    try:
        return json.loads(base64.b64decode(_pad(token)).decode("utf-8"))
    except ValueError as exc:
        raise CodecDecodeFailure(f"not a base64 JSON token: {exc}") from exc


def _decode_lz_string(token: str) -> Any:
    """Links written by the web app, lz-string compressed for URI components."""
    try:
        text = LZString().decompressFromEncodedURIComponent(token)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise CodecDecodeFailure(f"not an lz-string token: {exc!r}") from exc
    if not text:
        raise CodecDecodeFailure("not an lz-string token: empty payload")
    try:
        return json.loads(text)
    except ValueError as exc:
        raise CodecDecodeFailure(f"not an lz-string token: {exc}") from exc


TOKEN_DECODERS: tuple[Callable[[str], Any], ...] = (
    _decode_compressed,
    _decode_legacy_base64,
    _decode_lz_string,
)

# ---------------------------------------------------------------------------
# Structural decoders
# ---------------------------------------------------------------------------


def assign_colors(requested: list[int | None]) -> list[int]:
    """Resolve each calendar's stored palette index, first come first served.

    A requested index is kept if it is in range and no earlier calendar
    holds it. Otherwise the first free palette slot is used, and only when
    the palette is exhausted does the calendar's position modulo the
    palette size decide.
    """
    claimed: set[int] = set()
    result: list[int] = []
    for position, index in enumerate(requested):
        if index is None or not 0 <= index < len(GROUP_COLORS) or index in claimed:
            index = first_unused_color(claimed)
            if index is None:
                index = position % len(GROUP_COLORS)
        claimed.add(index)
        result.append(index)
    return result


def _span(start: datetime.date, end: datetime.date) -> tuple[datetime.date, datetime.date]:
    return (start, end) if start <= end else (end, start)


def _finish(
    anchor: datetime.date,
    include_weekends: bool,
    show_today: bool,
    calendars: list[Calendar],
) -> AppState:
    if len(calendars) > MAX_CALENDARS:
        logger.warning(
            "Dropping %d calendars beyond the limit of %d",
            len(calendars) - MAX_CALENDARS,
            MAX_CALENDARS,
        )
        calendars = calendars[:MAX_CALENDARS]
    if not calendars:
        logger.debug("Decoded state has no calendars; adding the default one")
        calendars = [default_calendar(0)]
    return AppState(
        start_date=anchor,
        include_weekends=include_weekends,
        show_today=show_today,
        calendars=tuple(calendars),
    )


def _from_compact(blob: Mapping[str, Any]) -> AppState:
    if "s" not in blob:
        raise CodecDecodeFailure("compact form requires 's'")
    try:
        data = CompactState.model_validate(blob)
        anchor = year_start(parse_date(data.s[:10]))
        colors = assign_colors([g.c for g in data.g])
        calendars = [
            _calendar_from_compact(g, anchor, color)
            for g, color in zip(data.g, colors, strict=True)
        ]
    except (ValueError, OverflowError) as exc:
        raise CodecDecodeFailure(f"invalid compact state: {exc}") from exc
    return _finish(anchor, data.w, data.t, calendars)


def _calendar_from_compact(g: CompactCalendar, anchor: datetime.date, color: int) -> Calendar:
    ranges = tuple(DateRange(*_span(add_days(anchor, a), add_days(anchor, b))) for a, b in g.r)
    config = None
    if g.pto is not None:
        config = PTOConfig(g.pto.y, g.pto.r, g.pto.e)
    entries = tuple(
        make_entry(
            add_days(anchor, e.sd),
            add_days(anchor, e.ed),
            e.hpd,
            name=e.n,
            entry_id=f"{e.sd}-{e.ed}-restored",
        )
        for e in g.pto_entries or ()
    )
    return Calendar(
        id=new_calendar_id(),
        name=g.n or DEFAULT_CALENDAR_NAME,
        color=color,
        ranges=ranges,
        pto_config=config,
        pto_entries=entries,
    )


def _from_verbose(blob: Mapping[str, Any]) -> AppState:
    if "startDate" not in blob:
        raise CodecDecodeFailure("verbose form requires 'startDate'")
    try:
        data = VerboseState.model_validate(blob)
        anchor = year_start(parse_date(data.start_date[:10]))
        colors = assign_colors([_palette_index(g.color) for g in data.event_groups])
        calendars = [
            _calendar_from_verbose(g, color)
            for g, color in zip(data.event_groups, colors, strict=True)
        ]
    except ValueError as exc:
        raise CodecDecodeFailure(f"invalid verbose state: {exc}") from exc
    return _finish(anchor, data.include_weekends, data.show_today, calendars)


def _palette_index(color: str | None) -> int | None:
    if color is None:
        return None
    try:
        return GROUP_COLORS.index(color.lower())
    except ValueError:
        return None


def _calendar_from_verbose(g: VerboseCalendar, color: int) -> Calendar:
    ranges = tuple(
        DateRange(*_span(parse_date(r.start[:10]), parse_date(r.end[:10])), r.description)
        for r in g.ranges
    )
    config = None
    if g.pto_config is not None:
        cfg = g.pto_config
        config = PTOConfig(cfg.years_of_service, cfg.rollover_hours, cfg.is_enabled)
    entries = []
    for e in g.pto_entries or ():
        start, end = parse_date(e.start_date[:10]), parse_date(e.end_date[:10])
        entries.append(make_entry(start, end, e.hours_per_day, name=e.name, entry_id=e.id))
    return Calendar(
        id=g.id or new_calendar_id(),
        name=g.name or DEFAULT_CALENDAR_NAME,
        color=color,
        ranges=ranges,
        pto_config=config,
        pto_entries=tuple(entries),
    )


STRUCTURAL_DECODERS: tuple[Callable[[Mapping[str, Any]], AppState], ...] = (
    _from_compact,
    _from_verbose,
)

# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def state_from_structural(blob: Any) -> AppState:
    """Strict variant of :func:`load_from_structural`.

    Raises ``CodecDecodeFailure`` when no structural decoder accepts *blob*.
    """
    if not isinstance(blob, Mapping):
        raise CodecDecodeFailure(f"expected a JSON object, got {type(blob).__name__}")
    reasons: list[str] = []
    for decoder in STRUCTURAL_DECODERS:
        try:
            return decoder(blob)
        except CodecDecodeFailure as exc:
            reasons.append(str(exc))
    raise CodecDecodeFailure("; ".join(reasons))


def decode_token(token: str) -> AppState:
    """Strict variant of :func:`load_from_token`.

    Each token decoder is tried in turn until one yields a blob that a
    structural decoder accepts.
    """
    reasons: list[str] = []
    for decoder in TOKEN_DECODERS:
        try:
            return state_from_structural(decoder(token))
        except CodecDecodeFailure as exc:
            reasons.append(str(exc))
    raise CodecDecodeFailure("; ".join(reasons))


def load_from_token(token: str | None) -> AppState:
    """Rebuild the state encoded in *token*, or the default state."""
    if not token:
        logger.debug("No state token; using the default state")
        return default_state()
    try:
        return decode_token(token)
    except CodecDecodeFailure as exc:
        logger.warning("Failed to decode state token, using defaults: %s", exc)
        return default_state()


def load_from_structural(blob: Mapping[str, Any] | str | None) -> AppState:
    """Rebuild a state from a persisted structural blob (a mapping or its JSON).

    Falls back to the default state if the blob is missing or unreadable.
    """
    if blob is None:
        logger.debug("No persisted state; using the default state")
        return default_state()
    try:
        if isinstance(blob, str):
            try:
                blob = json.loads(blob)
            except ValueError as exc:
                raise CodecDecodeFailure(f"invalid JSON: {exc}") from exc
        return state_from_structural(blob)
    except CodecDecodeFailure as exc:
        logger.warning("Failed to load persisted state, using defaults: %s", exc)
        return default_state()
