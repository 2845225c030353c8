"""
Unit tests for the local store subscription.

Tests for InMemoryEventStore and LocalStoreSubscriber.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from event_feed.ingestion.local_store import (
    InMemoryEventStore,
    LocalStoreSubscriber,
    StoreRecord,
)
from event_feed.schemas.event import EventSource

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def subscriber(store, settings):
    return LocalStoreSubscriber(store, settings=settings, clock=lambda: NOW)


class TestInMemoryEventStore:
    """Tests for InMemoryEventStore."""

    def test_subscribe_delivers_current_snapshot(self, store):
        store.put("a", {"title": "A"})
        on_snapshot = MagicMock()

        store.subscribe(on_snapshot, MagicMock())

        on_snapshot.assert_called_once()
        [records] = on_snapshot.call_args.args
        assert records == [StoreRecord(id="a", data={"title": "A"})]

    def test_every_change_pushes_full_snapshot(self, store):
        snapshots = []
        store.subscribe(snapshots.append, MagicMock())

        store.put("a", {"title": "A"})
        store.put("b", {"title": "B"})
        store.delete("a")

        assert [[r.id for r in s] for s in snapshots] == [[], ["a"], ["b", "a"], ["b"]]

    def test_ordered_by_created_at_descending(self, store):
        store.put("old", {"createdAt": "2024-01-01T00:00:00Z"})
        store.put("undated", {})
        store.put("new", {"createdAt": "2024-02-01T00:00:00Z"})

        assert [r.id for r in store.snapshot()] == ["new", "old", "undated"]

    def test_unsubscribe(self, store):
        on_snapshot = MagicMock()
        unsubscribe = store.subscribe(on_snapshot, MagicMock())
        unsubscribe()

        store.put("a", {})

        assert on_snapshot.call_count == 1
        assert store.subscriber_count == 0

    def test_fail_reaches_error_callback(self, store):
        on_error = MagicMock()
        store.subscribe(MagicMock(), on_error)
        error = RuntimeError("permission denied")

        store.fail(error)

        on_error.assert_called_once_with(error)

    def test_delete_unknown_is_noop(self, store):
        on_snapshot = MagicMock()
        store.subscribe(on_snapshot, MagicMock())
        store.delete("missing")
        assert on_snapshot.call_count == 1


class TestVisibleEvents:
    """Tests for LocalStoreSubscriber.visible_events."""

    def test_normalizes_records(self, subscriber):
        records = [StoreRecord(id="abc", data={"title": "Jazz", "category": "music"})]
        [event] = subscriber.visible_events(records)
        assert event.id == "abc"
        assert event.source_origin == EventSource.LOCAL

    def test_past_events_dropped(self, subscriber):
        records = [
            StoreRecord(id="past", data={"startDate": "2029-12-31T12:00:00Z"}),
            StoreRecord(id="future", data={"startDate": "2030-01-02T12:00:00Z"}),
            StoreRecord(id="undated", data={}),
        ]
        assert [e.id for e in subscriber.visible_events(records)] == ["future", "undated"]

    def test_legacy_source_dropped(self, subscriber):
        records = [
            StoreRecord(id="legacy", data={"source": "paris_opendata"}),
            StoreRecord(id="own", data={"source": "app"}),
        ]
        assert [e.id for e in subscriber.visible_events(records)] == ["own"]

    def test_legacy_organizer_dropped(self, subscriber):
        records = [
            StoreRecord(
                id="legacy",
                data={"organizerName": "Ville de Paris - Que faire à Paris (import)"},
            ),
        ]
        assert subscriber.visible_events(records) == []

    def test_store_order_preserved(self, subscriber):
        records = [StoreRecord(id=rid, data={}) for rid in ("c", "a", "b")]
        assert [e.id for e in subscriber.visible_events(records)] == ["c", "a", "b"]

    def test_non_mapping_payload_skipped(self, subscriber):
        records = [StoreRecord(id="bad", data=["not", "a", "dict"]), StoreRecord(id="ok", data={})]
        assert [e.id for e in subscriber.visible_events(records)] == ["ok"]


class TestSubscribe:
    """Tests for LocalStoreSubscriber.subscribe."""

    def test_emits_normalized_snapshot(self, store, subscriber):
        store.put("abc", {"title": "Jazz"})
        received = []

        subscriber.subscribe(received.append, MagicMock())
        store.put("def", {"title": "Rock"})

        assert [[e.id for e in batch] for batch in received] == [["abc"], ["def", "abc"]]

    def test_unsubscribe_is_idempotent(self, store, subscriber):
        received = []
        unsubscribe = subscriber.subscribe(received.append, MagicMock())

        unsubscribe()
        unsubscribe()
        store.put("abc", {})

        assert received == [[]]
        assert store.subscriber_count == 0

    def test_error_forwarded_and_logged_once(self, store, subscriber, caplog):
        on_error = MagicMock()
        subscriber.subscribe(MagicMock(), on_error)

        with caplog.at_level(logging.ERROR, logger="event_feed.ingestion.local_store"):
            store.fail(RuntimeError("denied"))
            store.fail(RuntimeError("denied again"))

        assert on_error.call_count == 2
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "denied" in errors[0].getMessage()

    def test_no_error_callback_after_unsubscribe(self, store, subscriber):
        on_error = MagicMock()
        unsubscribe = subscriber.subscribe(MagicMock(), on_error)
        unsubscribe()

        store.fail(RuntimeError("late"))

        on_error.assert_not_called()
