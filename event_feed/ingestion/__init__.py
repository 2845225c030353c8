"""
Event ingestion: local subscription, remote catalog, merge and publish.

Usage:
    from event_feed.ingestion import EventFeed, InMemoryEventStore
    from event_feed.ingestion.sources import TicketmasterSource

    async with EventFeed(store, TicketmasterSource(), category="music") as feed:
        feed.add_listener(render)
"""

from .deduplication import (
    EventDeduplicator,
    SignatureDeduplicator,
    merge_sources,
)
from .feed import EventFeed, RemoteEventFetcher, create_event_feed, publish_snapshot
from .filters import SortOption, filter_events, sort_events
from .images import ensure_unique_images, placeholder_for_event, unique_placeholder_for_event
from .local_store import InMemoryEventStore, LocalEventStore, LocalStoreSubscriber, StoreRecord

__all__ = [
    "EventDeduplicator",
    "EventFeed",
    "InMemoryEventStore",
    "LocalEventStore",
    "LocalStoreSubscriber",
    "RemoteEventFetcher",
    "SignatureDeduplicator",
    "SortOption",
    "StoreRecord",
    "create_event_feed",
    "ensure_unique_images",
    "filter_events",
    "merge_sources",
    "placeholder_for_event",
    "publish_snapshot",
    "sort_events",
    "unique_placeholder_for_event",
]
