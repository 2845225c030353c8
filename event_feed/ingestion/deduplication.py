"""
Module for event deduplication.

``SignatureDeduplicator`` matches by id, identity signature or venue signature
behind the ``EventDeduplicator`` interface, and ``merge_sources`` combines the
local and external contributions with local-first precedence.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
import logging

from event_feed.ingestion.normalization.signatures import EventSignatures
from event_feed.schemas.event import UnifiedEvent

logger = logging.getLogger(__name__)


class EventDeduplicator(ABC):
    """Abstract base for deduplication strategies."""

    @abstractmethod
    def deduplicate(self, events: Sequence[UnifiedEvent]) -> list[UnifiedEvent]:
        """Deduplicate events and return unique set, first occurrence kept."""
        pass


class SignatureDeduplicator(EventDeduplicator):
    """
    Drop any event that collides with an already-placed one.

    A collision is a shared id, a shared identity signature, or a shared venue
    signature. Duplicates are dropped wholesale: the first-placed record is
    kept verbatim, no fields are merged.
    """

    def deduplicate(self, events: Sequence[UnifiedEvent]) -> list[UnifiedEvent]:
        seen_ids: set[str] = set()
        seen_identity: set = set()
        seen_venue: set = set()
        unique_events: list[UnifiedEvent] = []

        for event in events:
            signatures = EventSignatures.of(event)
            if (
                (event.id and event.id in seen_ids)
                or signatures.identity in seen_identity
                or signatures.venue in seen_venue
            ):
                logger.debug(
                    "Dropping duplicate %s event %s (%r)",
                    event.source_origin.value,
                    event.id,
                    event.title,
                )
                continue

            if event.id:
                seen_ids.add(event.id)
            seen_identity.add(signatures.identity)
            seen_venue.add(signatures.venue)
            unique_events.append(event)

        return unique_events


def merge_sources(
    local: Sequence[UnifiedEvent],
    external: Sequence[UnifiedEvent],
    deduplicator: EventDeduplicator | None = None,
) -> list[UnifiedEvent]:
    """
    Merge the local and external contributions into one list.

    Events are placed by ``source_origin.precedence`` (stable), so every local
    event is evaluated before any external one and a local record always wins
    a collision, whichever list it arrived in. Order within a source is kept.

    Args:
        local: Normalized local events (authoritative)
        external: Normalized catalog events (supplementary)
        deduplicator: Strategy to apply, SignatureDeduplicator by default

    Returns:
        New list of unique events
    """
    deduplicator = deduplicator or SignatureDeduplicator()
    ordered = sorted([*local, *external], key=lambda e: e.source_origin.precedence)
    merged = deduplicator.deduplicate(ordered)
    logger.debug(
        "Merged %d local + %d external into %d events",
        len(local),
        len(external),
        len(merged),
    )
    return merged
