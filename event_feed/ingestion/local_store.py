"""
Live local event store subscription.

The local collection is authoritative. Its store pushes the full current
snapshot (never a diff) on every create/update/delete; errors arrive on a
separate callback. ``LocalStoreSubscriber`` filters and normalizes each
snapshot and hands back an explicit unsubscribe handle that the caller must
invoke on teardown.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from event_feed.configs.settings import Settings, get_settings
from event_feed.ingestion.normalization.records import (
    normalize_local_record,
    parse_instant,
    record_start,
)
from event_feed.schemas.event import UnifiedEvent

logger = logging.getLogger(__name__)

CREATED_AT_FIELD = "createdAt"


@dataclass(frozen=True)
class StoreRecord:
    """One document of the local collection."""

    id: str
    data: Mapping[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[list[StoreRecord]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class LocalEventStore(Protocol):
    """Push-based local event collection."""

    def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        order_by: str = CREATED_AT_FIELD,
        descending: bool = True,
    ) -> Unsubscribe:
        ...


class InMemoryEventStore:
    """
    In-process LocalEventStore.

    Delivers the current snapshot on subscribe and again after every change,
    ordered by ``createdAt``. Records without a creation time sort last.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._inserted: dict[str, int] = {}
        self._counter = itertools.count()
        self._subscribers: dict[int, tuple[SnapshotCallback, ErrorCallback, str, bool]] = {}
        self._subscription_ids = itertools.count()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def put(self, record_id: str, data: Mapping[str, Any]) -> None:
        """Create or replace a record and notify subscribers."""
        if record_id not in self._records:
            self._inserted[record_id] = next(self._counter)
        self._records[record_id] = dict(data)
        self._notify()

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is not None:
            self._inserted.pop(record_id, None)
            self._notify()

    def fail(self, error: Exception) -> None:
        """Deliver ``error`` to every subscriber's error callback."""
        for _, on_error, _, _ in list(self._subscribers.values()):
            on_error(error)

    def snapshot(self, order_by: str = CREATED_AT_FIELD, descending: bool = True) -> list[StoreRecord]:
        def sort_key(record_id: str) -> tuple[int, float, int]:
            created = parse_instant(self._records[record_id].get(order_by))
            stamp = created.timestamp() if created else 0.0
            sign = -1 if descending else 1
            missing = 1 if created is None else 0
            return (missing, sign * stamp, sign * self._inserted[record_id])

        ordered = sorted(self._records, key=sort_key)
        return [StoreRecord(id=rid, data=dict(self._records[rid])) for rid in ordered]

    def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        order_by: str = CREATED_AT_FIELD,
        descending: bool = True,
    ) -> Unsubscribe:
        subscription_id = next(self._subscription_ids)
        self._subscribers[subscription_id] = (on_snapshot, on_error, order_by, descending)
        on_snapshot(self.snapshot(order_by, descending))

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def _notify(self) -> None:
        for on_snapshot, _, order_by, descending in list(self._subscribers.values()):
            on_snapshot(self.snapshot(order_by, descending))


class LocalStoreSubscriber:
    """
    Subscribe to the local collection and emit normalized, visible events.

    Each snapshot drops records that already started and records left behind
    by the retired open-data importer, then normalizes the rest. A
    subscription error is logged once and forwarded to ``on_error``; it never
    raises.
    """

    def __init__(
        self,
        store: LocalEventStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    def is_legacy(self, data: Mapping[str, Any]) -> bool:
        """True for records created by a deprecated importer."""
        source = str(data.get("source") or "")
        if any(marker and marker in source for marker in self.settings.LEGACY_SOURCE_MARKERS):
            return True
        organizer = str(data.get("organizerName") or data.get("organizer_name") or "")
        return any(
            marker and marker in organizer for marker in self.settings.LEGACY_ORGANIZER_MARKERS
        )

    def visible_events(
        self,
        records: Sequence[StoreRecord],
        now: datetime | None = None,
    ) -> list[UnifiedEvent]:
        """Filter and normalize one snapshot, preserving store order."""
        now = now or self._clock()
        events: list[UnifiedEvent] = []

        for record in records:
            if not isinstance(record.data, Mapping):
                logger.warning(f"Skipping local record {record.id}: payload is not a mapping")
                continue
            if self.is_legacy(record.data):
                continue
            start = record_start(record.data)
            if start is not None and start < now:
                continue
            try:
                events.append(normalize_local_record(record.id, record.data))
            except ValueError as e:
                logger.warning(f"Skipping malformed local record {record.id}: {e}")

        return events

    def subscribe(
        self,
        on_events: Callable[[list[UnifiedEvent]], None],
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """
        Start the subscription.

        Args:
            on_events: Called with the filtered, normalized snapshot
            on_error: Called once per subscription error

        Returns:
            Idempotent unsubscribe handle; callbacks stop after it is called
        """
        active = True
        error_logged = False

        def handle_snapshot(records: list[StoreRecord]) -> None:
            if active:
                on_events(self.visible_events(records))

        def handle_error(error: Exception) -> None:
            nonlocal error_logged
            if not active:
                return
            if not error_logged:
                error_logged = True
                logger.error(f"Local events subscription failed: {error}")
            on_error(error)

        store_unsubscribe = self.store.subscribe(
            handle_snapshot, handle_error, order_by=CREATED_AT_FIELD, descending=True
        )

        def unsubscribe() -> None:
            nonlocal active
            if active:
                active = False
                store_unsubscribe()

        return unsubscribe
