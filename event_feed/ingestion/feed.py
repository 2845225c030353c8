"""
Event Feed.

Consumer-facing entry point that merges the live local collection with the
remote catalog. Two producers run independently:

- a one-shot, awaited remote fetch (bounded by a timeout)
- a long-lived local-store subscription delivering full snapshots

Every emission from either producer triggers a full recomputation over the
latest state of both: merge/dedup (local first), then image allocation, then
publish. Changing the category or search starts a fresh fetch/subscription
pair; results from a superseded pair are discarded.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Sequence
from typing import Optional, Protocol

from event_feed.configs.settings import Settings, get_settings
from event_feed.ingestion.deduplication import EventDeduplicator, merge_sources
from event_feed.ingestion.filters import SortOption, filter_events, sort_events
from event_feed.ingestion.images import ensure_unique_images
from event_feed.ingestion.local_store import LocalEventStore, LocalStoreSubscriber, Unsubscribe
from event_feed.schemas.event import UnifiedEvent

logger = logging.getLogger(__name__)

FeedListener = Callable[[list[UnifiedEvent], bool], None]

_feed_ids = itertools.count(1)


class RemoteEventFetcher(Protocol):
    """Remote catalog: always resolves to a list, empty on failure."""

    async def fetch_events(
        self,
        location: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page_size: Optional[int] = None,
        include_external: bool = True,
    ) -> list[UnifiedEvent]:
        ...


class EventFeed:
    """
    Published, de-duplicated event list for one consumer.

    Attributes:
        events: Current published list
        loading: True until the local subscription delivered its first
            snapshot or failed
    """

    def __init__(
        self,
        store: LocalEventStore,
        fetcher: RemoteEventFetcher,
        category: Optional[str] = None,
        search: str = "",
        *,
        location: Optional[str] = None,
        page_size: Optional[int] = None,
        include_external: bool = True,
        settings: Settings | None = None,
        deduplicator: EventDeduplicator | None = None,
        subscriber: LocalStoreSubscriber | None = None,
        owns_fetcher: bool = False,
    ):
        self.settings = settings or get_settings()
        self.fetcher = fetcher
        self._owns_fetcher = owns_fetcher
        self.subscriber = subscriber or LocalStoreSubscriber(store, settings=self.settings)
        self.deduplicator = deduplicator

        self.category = category
        self.search = search or ""
        self.location = location or self.settings.FEED_DEFAULT_LOCATION
        self.page_size = page_size or self.settings.FEED_PAGE_SIZE
        self.include_external = include_external

        self.events: list[UnifiedEvent] = []
        self.loading: bool = True

        self.feed_id = next(_feed_ids)
        self.logger = logging.LoggerAdapter(logger, {"feed_id": self.feed_id})

        self._generation = 0
        self._local: list[UnifiedEvent] = []
        self._external: list[UnifiedEvent] = []
        self._unsubscribe: Unsubscribe | None = None
        self._fetch_task: asyncio.Task | None = None
        self._listeners: list[FeedListener] = []
        self._closed = False

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        """Start the first fetch/subscription pair."""
        if self._closed:
            raise RuntimeError("EventFeed is closed")
        if not self.is_active:
            self._start_cycle()

    async def update(self, category: Optional[str], search: str = "") -> None:
        """
        Change the filter parameters.

        Tears down the current pair and starts a new one when the parameters
        actually changed.
        """
        if self._closed:
            raise RuntimeError("EventFeed is closed")
        search = search or ""
        if category == self.category and search == self.search and self.is_active:
            return
        self.category = category
        self.search = search
        self._start_cycle()

    async def close(self) -> None:
        """
        Unsubscribe and cancel the pending fetch. Safe to call twice.

        A fetcher built by the feed itself is closed too; an injected one
        belongs to the caller.
        """
        already_closed = self._closed
        self._closed = True
        self._teardown()
        task = self._fetch_task
        self._fetch_task = None
        if task is not None and not task.done():
            await asyncio.wait({task})
        close_fetcher = getattr(self.fetcher, "close", None)
        if self._owns_fetcher and not already_closed and close_fetcher is not None:
            await close_fetcher()

    async def wait_for_fetch(self) -> None:
        """Wait until the current pair's remote fetch settled."""
        task = self._fetch_task
        if task is not None:
            await asyncio.wait({task})

    async def __aenter__(self) -> "EventFeed":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _start_cycle(self) -> None:
        self._teardown()
        self._generation += 1
        generation = self._generation

        self._local = []
        self._external = []
        self.loading = True
        self.logger.debug(
            f"Starting generation {generation} (category={self.category!r}, search={self.search!r})"
        )

        self._fetch_task = asyncio.create_task(self._run_fetch(generation))
        self._unsubscribe = self.subscriber.subscribe(
            lambda events: self._on_local_snapshot(generation, events),
            lambda error: self._on_local_error(generation, error),
        )

    def _teardown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    # ========================================================================
    # PRODUCERS
    # ========================================================================

    async def _run_fetch(self, generation: int) -> None:
        timeout = self.settings.fetch_timeout(self.include_external)
        try:
            events = await asyncio.wait_for(
                self.fetcher.fetch_events(
                    location=self.location,
                    category=self.category,
                    search=self.search or None,
                    page_size=self.page_size,
                    include_external=self.include_external,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self.logger.warning(f"Remote fetch timed out after {timeout}s")
            events = []
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Remote fetch failed: {e}")
            events = []

        if not self._is_current(generation):
            self.logger.debug(f"Discarding fetch result of superseded generation {generation}")
            return

        self._external = list(events or [])
        self._recompute()

    def _on_local_snapshot(self, generation: int, events: list[UnifiedEvent]) -> None:
        if not self._is_current(generation):
            return
        self._local = list(events)
        self.loading = False
        self._recompute()

    def _on_local_error(self, generation: int, error: Exception) -> None:
        if not self._is_current(generation):
            return
        self._local = []
        self.loading = False
        self._recompute()

    # ========================================================================
    # PUBLISH
    # ========================================================================

    def _recompute(self) -> None:
        merged = merge_sources(self._local, self._external, self.deduplicator)
        self.events = ensure_unique_images(merged)
        for listener in list(self._listeners):
            try:
                listener(self.events, self.loading)
            except Exception:
                self.logger.exception("Feed listener failed")

    def add_listener(self, listener: FeedListener) -> Callable[[], None]:
        """
        Register ``listener(events, loading)`` for every publish.

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def view(
        self,
        search_query: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: SortOption | str | None = None,
    ) -> list[UnifiedEvent]:
        """Filter (and optionally sort) the current published list."""
        result = filter_events(self.events, search_query, category)
        if sort_by is not None:
            result = sort_events(result, sort_by)
        return result


def create_event_feed(
    store: LocalEventStore,
    category: Optional[str] = None,
    search: str = "",
    settings: Settings | None = None,
    **kwargs,
) -> EventFeed:
    """Build a feed backed by the Ticketmaster catalog. Closing the feed closes the catalog client."""
    from event_feed.ingestion.sources.ticketmaster import TicketmasterSource

    settings = settings or get_settings()
    return EventFeed(
        store,
        TicketmasterSource(settings=settings),
        category,
        search,
        settings=settings,
        owns_fetcher=True,
        **kwargs,
    )


def publish_snapshot(
    local: Sequence[UnifiedEvent],
    external: Sequence[UnifiedEvent],
    deduplicator: EventDeduplicator | None = None,
) -> list[UnifiedEvent]:
    """One recomputation pass: merge with local precedence, then allocate images."""
    return ensure_unique_images(merge_sources(local, external, deduplicator))
