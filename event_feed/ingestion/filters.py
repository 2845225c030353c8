"""
Filter and sort helpers for a published event list.

All functions are pure: they never mutate their input and always return a new
list.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence
from enum import Enum

from event_feed.schemas.event import UnifiedEvent


class SortOption(str, Enum):
    """Sort modes offered by the event list."""

    DATE = "date"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    TITLE = "title"


def filter_events(
    events: Sequence[UnifiedEvent],
    search_query: str | None = None,
    category: str | None = None,
) -> list[UnifiedEvent]:
    """
    Filter by exact category and by free-text search.

    The search is a case-insensitive substring match on title OR location OR
    organizer name. When both filters are given an event must pass both.
    A None category or a blank query disables that filter.
    """
    result = list(events)

    if category:
        result = [e for e in result if e.category == category]

    q = (search_query or "").strip().casefold()
    if q:
        result = [
            e
            for e in result
            if q in (e.title or "").casefold()
            or q in (e.location or "").casefold()
            or q in (e.organizer_name or "").casefold()
        ]

    return result


def _effective_price(event: UnifiedEvent) -> float:
    if event.is_free:
        return 0.0
    return float(event.price or 0.0)


def _date_key(event: UnifiedEvent) -> tuple[int, float]:
    # Undated events go last
    if event.start_instant is None:
        return (1, 0.0)
    return (0, event.start_instant.timestamp())


def _price_desc_key(event: UnifiedEvent) -> tuple[int, float]:
    # Free events go last in descending order, unlike price-asc where they lead
    if event.is_free:
        return (1, 0.0)
    return (0, -float(event.price or 0.0))


def _title_key(event: UnifiedEvent) -> tuple[str, str]:
    title = event.title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), title)


def sort_events(
    events: Sequence[UnifiedEvent],
    sort_by: SortOption | str,
) -> list[UnifiedEvent]:
    """
    Return a sorted copy of ``events``.

    Args:
        events: Events to sort
        sort_by: SortOption or its string value

    Raises:
        ValueError: If ``sort_by`` is not a known sort mode
    """
    option = SortOption(sort_by)

    if option == SortOption.DATE:
        return sorted(events, key=_date_key)
    if option == SortOption.PRICE_ASC:
        return sorted(events, key=_effective_price)
    if option == SortOption.PRICE_DESC:
        return sorted(events, key=_price_desc_key)
    return sorted(events, key=_title_key)
