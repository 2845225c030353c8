"""
Event fingerprints for cross-source duplicate detection.

Two records describing the same real-world event usually carry different ids
(one from the local collection, one from the catalog), so identity is resolved
through two fingerprints:

- identity signature: title + minute bucket + location + cover image path
- venue signature: location + minute bucket + organizer (looser)

Empty components are part of the fingerprint. Two sparse records with a blank
location and organizer at the same minute share a venue signature and are
collapsed by the merger.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timezone

from event_feed.schemas.event import UnifiedEvent

TITLE_MAX_LENGTH = 120
LOCATION_MAX_LENGTH = 80
ORGANIZER_MAX_LENGTH = 60
IMAGE_URL_MAX_LENGTH = 200
DATE_FALLBACK_MAX_LENGTH = 30

DATE_BUCKET_FORMAT = "%Y-%m-%dT%H:%M"

_WHITESPACE_RE = re.compile(r"\s+")
_COMMA_RUN_RE = re.compile(r"\s*,[\s,]*")

IdentitySignature = tuple[str, str, str, str]
VenueSignature = tuple[str, str, str]


def normalize_text(value: str | None, max_length: int) -> str:
    """
    Lowercase, trim, collapse whitespace and comma runs, then truncate.

    Example:
        >>> normalize_text("  Paris ,  Club   X ", 80)
        'paris, club x'
    """
    s = (value or "").strip().lower()
    s = _COMMA_RUN_RE.sub(", ", s)
    s = _WHITESPACE_RE.sub(" ", s).strip()
    return s[:max_length]


def normalize_image_url(url: str | None, max_length: int = IMAGE_URL_MAX_LENGTH) -> str:
    """Trimmed, lowercased URL without its query string."""
    u = (url or "").strip()
    if not u:
        return ""
    return u.split("?", 1)[0].lower()[:max_length]


def date_bucket(event: UnifiedEvent) -> str:
    """Minute-precision UTC bucket, or the display date when no instant is known."""
    if event.start_instant is not None:
        return event.start_instant.astimezone(timezone.utc).strftime(DATE_BUCKET_FORMAT)
    return (event.display_date or "").strip().lower()[:DATE_FALLBACK_MAX_LENGTH]


def identity_signature(event: UnifiedEvent) -> IdentitySignature:
    return (
        normalize_text(event.title, TITLE_MAX_LENGTH),
        date_bucket(event),
        normalize_text(event.location, LOCATION_MAX_LENGTH),
        normalize_image_url(event.cover_image),
    )


def venue_signature(event: UnifiedEvent) -> VenueSignature:
    return (
        normalize_text(event.location, LOCATION_MAX_LENGTH),
        date_bucket(event),
        normalize_text(event.organizer_name, ORGANIZER_MAX_LENGTH),
    )


@dataclass(frozen=True)
class EventSignatures:
    """Both fingerprints of one event."""

    identity: IdentitySignature
    venue: VenueSignature

    @classmethod
    def of(cls, event: UnifiedEvent) -> "EventSignatures":
        return cls(identity=identity_signature(event), venue=venue_signature(event))
