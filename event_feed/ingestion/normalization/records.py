"""
Record normalization.

Turns raw local-store documents into UnifiedEvent instances and provides the
date/time helpers shared with the catalog mapping. Malformed fields fall
back to defaults; the record itself is kept.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional

from event_feed.schemas.event import EventSource, UnifiedEvent


DEFAULT_LOCAL_TITLE = "Untitled"
DEFAULT_ORGANIZER = "Organizer"


# ============================================================================
# DATE & TIME
# ============================================================================


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a stored start/end value into an aware datetime.

    Accepts datetimes, dates, ISO-8601 strings (``Z`` suffix allowed), epoch
    seconds and store timestamp objects exposing ``to_datetime()`` or
    ``ToDatetime()``. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        converter = getattr(value, "to_datetime", None) or getattr(value, "ToDatetime", None)
        if converter is None:
            return None
        try:
            dt = converter()
        except (TypeError, ValueError):
            return None
        if not isinstance(dt, datetime):
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_display_date(start: Optional[datetime]) -> str:
    """
    Long human date, e.g. ``"Saturday 15 June 2024"``.

    Returns an empty string when no start is known.
    """
    if start is None:
        return ""
    return f"{start.strftime('%A')} {start.day:02d} {start.strftime('%B %Y')}"


def format_display_time(start: Optional[datetime], end: Optional[datetime] = None) -> str:
    """``"HH:MM"`` or ``"HH:MM - HH:MM"`` when an end is known."""
    if start is None:
        return ""
    start_time = start.strftime("%H:%M")
    if end is None:
        return start_time
    return f"{start_time} - {end.strftime('%H:%M')}"


# ============================================================================
# LOCAL RECORDS
# ============================================================================


def _get(data: Mapping[str, Any], *keys: str) -> Any:
    """First non-None value among ``keys`` (store camelCase, then snake_case)."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_price(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)) and value >= 0:
        return float(value)
    return 0.0


def record_start(data: Mapping[str, Any]) -> Optional[datetime]:
    return parse_instant(_get(data, "startDate", "start_date"))


def normalize_local_record(record_id: str, data: Mapping[str, Any]) -> UnifiedEvent:
    """
    Map a local-store document into a UnifiedEvent.

    Args:
        record_id: Document id in the local collection
        data: Document payload (store field names, e.g. ``startDate``)

    Returns:
        UnifiedEvent with ``source_origin=LOCAL``; missing fields get defaults
    """
    start = record_start(data)
    end = parse_instant(_get(data, "endDate", "end_date"))

    return UnifiedEvent(
        id=str(record_id),
        source_origin=EventSource.LOCAL,
        title=_as_text(data.get("title")) or DEFAULT_LOCAL_TITLE,
        description=_as_text(data.get("description")) or "",
        category=_as_text(data.get("category")),
        start_instant=start,
        end_instant=end,
        display_date=format_display_date(start),
        display_time=format_display_time(start, end),
        location=_as_text(data.get("location")) or "",
        organizer_name=_as_text(_get(data, "organizerName", "organizer_name")) or DEFAULT_ORGANIZER,
        price=_as_price(data.get("price")),
        is_free=bool(_get(data, "isFree", "is_free")),
        cover_image=_as_text(_get(data, "coverImage", "cover_image")),
    )
