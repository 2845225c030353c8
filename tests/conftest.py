"""
Shared pytest fixtures for the event feed test suite.

Provides factory fixtures for UnifiedEvent objects, isolated settings and a
stub remote fetcher.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional

import pytest

from event_feed.configs.settings import Settings
from event_feed.schemas.event import EventSource, UnifiedEvent


@pytest.fixture
def create_event():
    """
    Return a function that creates UnifiedEvent objects with sensible defaults.

    The default location is derived from the title so that two events with
    different titles never share a venue signature by accident.

    Example:
        event = create_event(title="Jazz Night", category="music")
    """

    def _create_event(
        title: str = "Test Event",
        start_instant: Optional[datetime] = None,
        source_origin: EventSource = EventSource.LOCAL,
        **kwargs,
    ) -> UnifiedEvent:
        if start_instant is None:
            start_instant = datetime(2030, 6, 15, 20, 0, tzinfo=timezone.utc)

        defaults = {
            "id": str(uuid.uuid4()),
            "title": title,
            "source_origin": source_origin,
            "start_instant": start_instant,
            "location": f"{title} Hall, Paris",
            "organizer_name": "Test Organizer",
            "category": "music",
            "price": 0.0,
            "is_free": True,
        }

        # Merge defaults with provided kwargs
        defaults.update(kwargs)

        return UnifiedEvent(**defaults)

    return _create_event


@pytest.fixture
def sample_event(create_event):
    """Return a single default test event."""
    return create_event()


@pytest.fixture
def settings():
    """Settings isolated from the environment's .env file, with a catalog key."""
    return Settings(
        _env_file=None,
        TICKETMASTER_API_KEY="test-key",
        FETCH_TIMEOUT_S=1.0,
        FETCH_TIMEOUT_WITH_EXTERNAL_S=2.0,
    )


@pytest.fixture
def settings_without_key():
    """Settings simulating a missing catalog credential."""
    return Settings(_env_file=None, TICKETMASTER_API_KEY=None)


class StubFetcher:
    """Remote fetcher returning canned events and recording its calls."""

    def __init__(self, events=None, delay: float = 0.0, error: Exception | None = None):
        self.events = list(events or [])
        self.delay = delay
        self.error = error
        self.calls: list[dict] = []

    async def fetch_events(
        self,
        location=None,
        category=None,
        search=None,
        page_size=None,
        include_external=True,
    ):
        self.calls.append(
            {
                "location": location,
                "category": category,
                "search": search,
                "page_size": page_size,
                "include_external": include_external,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.events)


@pytest.fixture
def make_fetcher():
    """Return a function building StubFetcher instances."""

    def _make_fetcher(events=None, delay: float = 0.0, error: Exception | None = None):
        return StubFetcher(events, delay=delay, error=error)

    return _make_fetcher
