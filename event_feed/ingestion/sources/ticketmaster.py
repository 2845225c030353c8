"""
Ticketmaster catalog source.

Fetches upcoming events from the Ticketmaster Discovery API and maps them into
UnifiedEvent. The catalog is best-effort and supplementary: missing
credentials, network errors, timeouts, non-2xx responses and malformed payloads
all produce an empty list.
"""

from __future__ import annotations

import html
import logging
import re
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

import httpx

from event_feed.configs.config import Config
from event_feed.configs.settings import Settings, get_settings
from event_feed.ingestion.adapters.api_adapter import APIAdapter, APIAdapterConfig
from event_feed.ingestion.normalization.records import (
    format_display_date,
    format_display_time,
    parse_instant,
)
from event_feed.monitoring.logging import RateLimitedLogger
from event_feed.schemas.event import EventCategory, EventSource, UnifiedEvent

logger = logging.getLogger(__name__)

SOURCE_NAME = "ticketmaster"
DEFAULT_ENDPOINT = "https://app.ticketmaster.com/discovery/v2/events.json"
DEFAULT_TITLE = "Event"
DEFAULT_DESCRIPTION_MAX_LENGTH = 500

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


# ============================================================================
# QUERY
# ============================================================================


def split_location(location: str, default_country_code: str = "FR") -> tuple[str, str]:
    """
    Split ``"City,Country"`` into (city, two-letter country code).

    Example:
        >>> split_location("Paris,France")
        ('Paris', 'FR')
        >>> split_location("Lyon")
        ('Lyon', 'FR')
    """
    parts = [p.strip() for p in (location or "").split(",")]
    city = parts[0] if parts else ""
    country = parts[1].upper() if len(parts) > 1 and parts[1] else default_country_code
    return city, country[:2]


def format_start_datetime(now: datetime) -> str:
    """Catalog date filter format, ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


# ============================================================================
# MAPPING
# ============================================================================


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _as_text(value: Any) -> Optional[str]:
    """Trimmed text for strings and numbers, None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _event_instant(dates: Any, which: str, default_time: str) -> Optional[datetime]:
    block = _dig(dates, which)
    if not isinstance(block, dict):
        return None
    if block.get("dateTime"):
        return parse_instant(block["dateTime"])
    if block.get("localDate"):
        local_time = block.get("localTime") or default_time
        return parse_instant(f"{block['localDate']}T{local_time}")
    return None


def select_cover_image(
    images: Any,
    ratio: str = "16_9",
    min_width: int = 1000,
) -> Optional[str]:
    """
    Pick the cover image: a wide image of good quality, else the first one.

    Args:
        images: Catalog ``images`` array
        ratio: Preferred aspect ratio tag
        min_width: Minimum width for the preferred image

    Returns:
        Image URL, or None when no image carries a URL
    """
    if not isinstance(images, list):
        return None
    candidates = [img for img in images if isinstance(img, dict) and _as_text(img.get("url"))]
    for img in candidates:
        width = img.get("width")
        if img.get("ratio") == ratio and isinstance(width, (int, float)) and width >= min_width:
            return _as_text(img["url"])
    return _as_text(candidates[0]["url"]) if candidates else None


def build_location(venue: Any, queried_city: str) -> str:
    """Street address + city, else venue name, else the queried city."""
    address = _as_text(_dig(venue, "address", "line1"))
    city = _as_text(_dig(venue, "city", "name"))
    if address and city:
        return f"{address}, {city}"
    return _as_text(_dig(venue, "name")) or queried_city


def clean_description(text: Any, max_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH) -> str:
    """Strip tags and entities, collapse whitespace, cap the length."""
    if not isinstance(text, str) or not text:
        return ""
    cleaned = html.unescape(_TAG_RE.sub(" ", text))
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:max_length]


def map_ticketmaster_event(
    raw: Dict[str, Any],
    queried_city: str,
    category: Optional[str] = None,
    image_ratio: str = "16_9",
    image_min_width: int = 1000,
    default_title: str = DEFAULT_TITLE,
    description_max_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH,
) -> Optional[UnifiedEvent]:
    """
    Map one catalog event into a UnifiedEvent.

    Returns:
        UnifiedEvent, or None when the record carries no id
    """
    event_id = raw.get("id")
    if not event_id:
        return None

    dates = raw.get("dates")
    start = _event_instant(dates, "start", "00:00:00")
    end = _event_instant(dates, "end", "23:59:59")

    venues = _dig(raw, "_embedded", "venues")
    venue = venues[0] if isinstance(venues, list) and venues else None
    venue_name = _as_text(_dig(venue, "name"))

    price_ranges = raw.get("priceRanges")
    min_price = None
    if isinstance(price_ranges, list) and price_ranges and isinstance(price_ranges[0], dict):
        candidate = price_ranges[0].get("min")
        if isinstance(candidate, (int, float)) and not isinstance(candidate, bool) and candidate >= 0:
            min_price = float(candidate)

    description = next(
        (
            raw[key]
            for key in ("info", "description", "pleaseNote")
            if isinstance(raw.get(key), str) and raw[key].strip()
        ),
        None,
    )

    return UnifiedEvent(
        id=str(event_id),
        source_origin=EventSource.EXTERNAL,
        title=_as_text(raw.get("name")) or default_title,
        description=clean_description(description, description_max_length),
        category=category or None,
        start_instant=start,
        end_instant=end,
        display_date=format_display_date(start),
        display_time=format_display_time(start, end),
        location=build_location(venue, queried_city),
        venue_name=venue_name,
        organizer_name=venue_name,
        price=min_price,
        is_free=min_price == 0.0,
        cover_image=select_cover_image(raw.get("images"), image_ratio, image_min_width),
    )


# ============================================================================
# SOURCE
# ============================================================================


class TicketmasterSource:
    """
    Remote event fetcher backed by the Ticketmaster Discovery API.

    One call per fetch, future-dated events only, date ascending. Never raises.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        source_config: Dict[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the source.

        Args:
            settings: Application settings (cached settings by default)
            source_config: ``sources.ticketmaster`` block (feed.yaml by default)
            client: Optional pre-built HTTP client
        """
        self.settings = settings or get_settings()
        self.source_config = (
            source_config if source_config is not None else Config.get_source_config(SOURCE_NAME)
        )
        self.logger = logging.getLogger(f"source.{SOURCE_NAME}")
        self.credentials_logger = RateLimitedLogger(
            self.logger, self.settings.NETWORK_WARN_INTERVAL_S
        )

        key = self.settings.TICKETMASTER_API_KEY
        self.adapter = APIAdapter(
            APIAdapterConfig(
                source_id=SOURCE_NAME,
                base_url=self.source_config.get("endpoint") or DEFAULT_ENDPOINT,
                api_key=key.get_secret_value() if key else None,
                api_key_param="apikey",
                request_timeout=self.settings.FETCH_TIMEOUT_S,
                network_warn_interval_s=self.settings.NETWORK_WARN_INTERVAL_S,
                response_path=self.source_config.get("response_path") or "_embedded.events",
            ),
            query_builder=self.build_query,
            client=client,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.source_config.get("enabled", True))

    @property
    def has_credentials(self) -> bool:
        return bool(self.adapter.api_config.api_key)

    def segment_for(self, category: Optional[str]) -> Optional[str]:
        """Catalog segment id for one of our categories, if any."""
        known = EventCategory.from_value(category)
        if known is None:
            return None
        return (self.source_config.get("segments") or {}).get(known.value)

    def build_query(
        self,
        location: str,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: int = 50,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Build Discovery API query params."""
        city, country_code = split_location(
            location, self.source_config.get("default_country_code") or "FR"
        )
        params: Dict[str, Any] = {
            "city": city,
            "countryCode": country_code,
            "size": page_size,
            "sort": self.source_config.get("sort") or "date,asc",
            "startDateTime": format_start_datetime(now or datetime.now(UTC)),
        }
        locale = self.source_config.get("locale")
        if locale:
            params["locale"] = locale
        segment_id = self.segment_for(category)
        if segment_id:
            params["segmentId"] = segment_id
        if search and search.strip():
            params["keyword"] = search.strip()
        return params

    async def fetch_events(
        self,
        location: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: Optional[int] = None,
        include_external: bool = True,
    ) -> List[UnifiedEvent]:
        """
        Fetch and map catalog events.

        Args:
            location: ``"City,Country"`` query (settings default when None)
            category: Optional category filter
            search: Optional free-text filter
            page_size: Maximum number of results (settings default when None)
            include_external: When False, return [] without calling the catalog

        Returns:
            Mapped events, [] on any failure
        """
        if not include_external or not self.enabled:
            return []

        if not self.has_credentials:
            self.credentials_logger.error(
                "missing_credentials", "TICKETMASTER_API_KEY is not configured"
            )
            return []

        location = location or self.settings.FEED_DEFAULT_LOCATION
        page_size = page_size or self.settings.FEED_PAGE_SIZE

        result = await self.adapter.fetch(
            timeout=self.settings.fetch_timeout(include_external),
            location=location,
            category=category,
            search=search,
            page_size=page_size,
        )
        if not result.success:
            return []

        city, _ = split_location(location)
        image_config = self.source_config.get("image") or {}
        defaults = self.source_config.get("defaults") or {}

        events: List[UnifiedEvent] = []
        for raw in result.raw_data:
            try:
                event = map_ticketmaster_event(
                    raw,
                    queried_city=city,
                    category=category,
                    image_ratio=image_config.get("ratio", "16_9"),
                    image_min_width=image_config.get("min_width", 1000),
                    default_title=defaults.get("title", DEFAULT_TITLE),
                    description_max_length=defaults.get(
                        "description_max_length", DEFAULT_DESCRIPTION_MAX_LENGTH
                    ),
                )
            except (ValueError, TypeError, AttributeError) as e:
                self.logger.warning(f"Skipping malformed catalog event {raw.get('id')}: {e}")
                continue
            if event is None:
                self.logger.warning("Skipping catalog event without id")
                continue
            events.append(event)

        self.logger.info(f"Fetched {len(events)} events for {location}")
        return events

    async def close(self) -> None:
        await self.adapter.close()
