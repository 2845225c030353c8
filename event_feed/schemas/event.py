# event_feed/schemas/event.py
"""
Unified Event Schema for the event feed.

Events reach the feed from two places: the live local collection (authoritative,
created in-app) and the third-party catalog (supplementary, refetched wholesale).
Both are normalized into the same shape so that merging, image allocation and
filtering never need to know where a record came from, except through
``source_origin``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventSource(str, Enum):
    """
    Origin of a unified event.

    Local records always take precedence over external ones on collision.
    """

    LOCAL = "local"
    EXTERNAL = "external"

    @property
    def precedence(self) -> int:
        """Lower value wins."""
        return 0 if self is EventSource.LOCAL else 1


class EventCategory(str, Enum):
    """Category vocabulary shared by the app and the catalog mapping."""

    MUSIC = "music"
    SPORTS = "sports"
    ARTS = "arts"
    FOOD = "food"
    TECHNOLOGY = "technology"
    BUSINESS = "business"
    EDUCATION = "education"
    HEALTH = "health"
    FAMILY = "family"
    OTHER = "other"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["EventCategory"]:
        """
        Return the matching category, or None for blank/unknown values.

        Example:
            >>> EventCategory.from_value("music")
            <EventCategory.MUSIC: 'music'>
            >>> EventCategory.from_value("karaoke") is None
            True
        """
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class UnifiedEvent(BaseModel):
    """
    Normalized representation of an event regardless of originating source.

    Instances are immutable; pipeline stages that change a field (the image
    allocator) return a copy.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "Z698xZC2Z17Gk0P",
                "title": "Jazz Night",
                "cover_image": "https://s1.ticketm.net/dam/a/123/16_9_1024.jpg",
                "start_instant": "2026-11-14T20:30:00Z",
                "display_date": "Saturday 14 November 2026",
                "display_time": "20:30",
                "location": "12 Rue de Lappe, Paris",
                "organizer_name": "Club X",
                "price": 25.0,
                "is_free": False,
                "category": "music",
                "source_origin": "external",
            }
        },
    )

    # ---- IDENTITY ----
    id: str = Field(description="Unique per source before merge")
    source_origin: EventSource

    # ---- CORE EVENT INFORMATION ----
    title: str
    description: Optional[str] = None
    category: Optional[str] = None

    # ---- TIMING ----
    start_instant: Optional[datetime] = None
    end_instant: Optional[datetime] = None
    display_date: str = ""
    display_time: str = ""

    # ---- LOCATION & ORGANIZER ----
    location: Optional[str] = None
    venue_name: Optional[str] = None
    organizer_name: Optional[str] = None

    # ---- PRICING ----
    price: Optional[float] = Field(default=None, ge=0)
    is_free: Optional[bool] = None

    # ---- MEDIA ----
    cover_image: Optional[str] = None

    @field_validator("start_instant", "end_instant")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes as UTC so instants are always comparable."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("cover_image")
    @classmethod
    def blank_image_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def effective_category(self) -> EventCategory:
        """Known category, or OTHER for missing/unknown ones."""
        return EventCategory.from_value(self.category) or EventCategory.OTHER
