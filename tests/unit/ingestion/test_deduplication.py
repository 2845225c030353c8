"""
Unit tests for the deduplication module.

Tests:
- SignatureDeduplicator
- merge_sources (local-first precedence)
"""

from datetime import datetime, timedelta, timezone

import pytest

from event_feed.ingestion.deduplication import (
    EventDeduplicator,
    SignatureDeduplicator,
    merge_sources,
)
from event_feed.schemas.event import EventSource

T = datetime(2030, 6, 15, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_events(create_event):
    """Three clearly distinct events."""
    return [
        create_event(title="Jazz Night", start_instant=T),
        create_event(title="Rock Show", start_instant=T + timedelta(days=1)),
        create_event(title="Tech Meetup", start_instant=T + timedelta(days=2)),
    ]


@pytest.fixture
def duplicate_events(create_event):
    """Four events, the last one a case/whitespace variant of the first."""
    return [
        create_event(title="Jazz Night", location="Paris, Club X", start_instant=T),
        create_event(title="Rock Show", start_instant=T + timedelta(days=1)),
        create_event(title="Tech Meetup", start_instant=T + timedelta(days=2)),
        create_event(title="jazz  NIGHT", location="paris,club x", start_instant=T),
    ]


class TestSignatureDeduplicator:
    """Tests for SignatureDeduplicator."""

    def test_no_duplicates(self, sample_events):
        assert SignatureDeduplicator().deduplicate(sample_events) == sample_events

    def test_identity_collision(self, duplicate_events):
        result = SignatureDeduplicator().deduplicate(duplicate_events)
        assert len(result) == 3

    def test_id_collision(self, create_event):
        a = create_event(id="same", title="A")
        b = create_event(id="same", title="B")
        assert SignatureDeduplicator().deduplicate([a, b]) == [a]

    def test_venue_collision_despite_different_titles(self, create_event):
        a = create_event(title="Match Day", location="Stadium A", organizer_name="Org1")
        b = create_event(title="Different Title", location="Stadium A", organizer_name="Org1")
        assert SignatureDeduplicator().deduplicate([a, b]) == [a]

    def test_first_record_kept_verbatim(self, create_event):
        """No field merging: the survivor keeps its own (possibly empty) fields."""
        a = create_event(id="a", title="Jazz", location="X", description=None)
        b = create_event(id="b", title="Jazz", location="X", description="Rich description")
        result = SignatureDeduplicator().deduplicate([a, b])
        assert result == [a]
        assert result[0].description is None

    def test_sparse_records_collapse(self, create_event):
        """Blank location and organizer at the same minute count as one venue."""
        a = create_event(title="A", location="", organizer_name="")
        b = create_event(title="B", location="", organizer_name="")
        assert len(SignatureDeduplicator().deduplicate([a, b])) == 1


class TestMergeSources:
    """Tests for merge_sources."""

    def test_same_event_from_both_sources_keeps_local(self, create_event):
        local = [create_event(id="L1", title="Jazz Night", location="Paris, Club X", start_instant=T)]
        external = [
            create_event(
                id="E1",
                title="Jazz Night",
                location="Paris, Club X",
                start_instant=T,
                source_origin=EventSource.EXTERNAL,
            )
        ]

        result = merge_sources(local, external)

        assert [e.id for e in result] == ["L1"]

    def test_venue_collision_drops_external(self, create_event):
        local = [
            create_event(
                id="L1", title="Match Day", location="Stadium A", organizer_name="Org1", start_instant=T
            )
        ]
        external = [
            create_event(
                id="E1",
                title="Different Title",
                location="Stadium A",
                organizer_name="Org1",
                start_instant=T,
                source_origin=EventSource.EXTERNAL,
            )
        ]

        assert [e.id for e in merge_sources(local, external)] == ["L1"]

    def test_local_first_then_external_order(self, create_event):
        local = [create_event(id="L1", title="A"), create_event(id="L2", title="B")]
        external = [
            create_event(id="E1", title="C", source_origin=EventSource.EXTERNAL),
            create_event(id="E2", title="D", source_origin=EventSource.EXTERNAL),
        ]
        assert [e.id for e in merge_sources(local, external)] == ["L1", "L2", "E1", "E2"]

    def test_local_duplicates_collapsed(self, create_event):
        local = [
            create_event(id="L1", title="Jazz", location="X"),
            create_event(id="L2", title="Jazz", location="X"),
        ]
        assert [e.id for e in merge_sources(local, [])] == ["L1"]

    def test_empty_sources(self):
        assert merge_sources([], []) == []

    def test_inputs_not_mutated(self, create_event):
        local = [create_event(id="L1", title="Jazz", location="X")]
        external = [create_event(id="E1", title="Jazz", location="X", source_origin="external")]
        merge_sources(local, external)
        assert len(local) == 1
        assert len(external) == 1

    def test_custom_deduplicator(self, create_event):
        class IdOnlyDeduplicator(EventDeduplicator):
            def deduplicate(self, events):
                seen, unique = set(), []
                for event in events:
                    if event.id not in seen:
                        seen.add(event.id)
                        unique.append(event)
                return unique

        a = create_event(id="L1", title="Match Day", location="Stadium A")
        b = create_event(id="E1", title="Other", location="Stadium A", source_origin="external")
        result = merge_sources([a], [b], IdOnlyDeduplicator())
        assert [e.id for e in result] == ["L1", "E1"]

    def test_local_wins_even_when_passed_after_external(self, create_event):
        """Placement follows source precedence, not argument position."""
        remote = create_event(
            id="E1", title="Jazz Night", location="Paris, Club X", source_origin=EventSource.EXTERNAL
        )
        local = create_event(id="L1", title="Jazz Night", location="Paris, Club X")

        result = merge_sources([remote], [local])

        assert [e.id for e in result] == ["L1"]
