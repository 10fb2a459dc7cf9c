"""
Tests for the IncidentManager.

This module tests incident creation, report submission with duplicate
detection, timeline annotations, deletion, statistics, and callbacks.
"""

from datetime import datetime, timezone

import pytest

from breachwatch.exceptions import (
    IncidentNotFoundError,
    StorageError,
    ValidationError,
)
from breachwatch.incidents import (
    IncidentEvent,
    IncidentEventType,
    IncidentManager,
    IncidentSeverity,
    IncidentStatus,
)
from breachwatch.incidents.models import TimelineEvent
from breachwatch.storage import InMemoryIncidentRepository, InMemoryTimelineRepository, Stores


class BrokenTimelineStore(InMemoryTimelineRepository):
    def append(self, event: TimelineEvent) -> TimelineEvent:
        raise StorageError("disk full")


class SourceRejectingTimelineStore(InMemoryTimelineRepository):
    def append(self, event: TimelineEvent) -> TimelineEvent:
        if event.event == "source_added":
            raise StorageError("disk full")
        return super().append(event)


# =============================================================================
# Creation
# =============================================================================


class TestCreateIncident:
    """Tests for creating incidents."""

    def test_create_defaults(self, manager: IncidentManager) -> None:
        incident = manager.create_incident(
            title="Ransomware hits regional hospital",
            description="Systems encrypted, patient intake diverted",
            severity=IncidentSeverity.CRITICAL,
        )

        assert incident.incident_id
        assert incident.status == IncidentStatus.REPORTED
        assert incident.severity == IncidentSeverity.CRITICAL
        assert incident.source_ids == ()
        assert incident.last_updated >= incident.discovery_date
        assert manager.get_incident(incident.incident_id) == incident

    def test_create_with_strings(self, manager: IncidentManager) -> None:
        incident = manager.create_incident(
            title="Phishing wave targets banks",
            description="Spoofed login pages for three banks",
            severity="HIGH",
            discovery_date="2024-03-01T08:00:00Z",
            source_ids=["blog1", "cnn_feed"],
            classifications=["phishing"],
        )

        assert incident.severity == IncidentSeverity.HIGH
        assert incident.discovery_date == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)
        assert incident.source_ids == ("blog1", "cnn_feed")
        assert incident.classifications == ("phishing",)

    def test_create_appends_created_event(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident()

        events = manager.list_timeline(incident.incident_id)

        assert len(events) == 1
        assert events[0].event == "created"
        assert events[0].details == {"status": "reported"}

    def test_unique_ids(self, make_incident) -> None:
        ids = {make_incident(title=f"Incident number {i}").incident_id for i in range(20)}
        assert len(ids) == 20

    def test_invalid_severity(self, manager: IncidentManager) -> None:
        with pytest.raises(ValidationError) as exc_info:
            manager.create_incident("Some incident", "Some description", "severe")
        assert exc_info.value.details["field"] == "severity"

    def test_invalid_discovery_date(self, manager: IncidentManager) -> None:
        with pytest.raises(ValidationError):
            manager.create_incident(
                "Some incident", "Some description", "low", discovery_date="yesterday"
            )

    def test_creation_rolled_back_when_timeline_fails(self) -> None:
        store = InMemoryIncidentRepository()
        manager = IncidentManager(store, BrokenTimelineStore())

        with pytest.raises(StorageError):
            manager.create_incident("Some incident", "Some description", "low")

        assert store.count() == 0


# =============================================================================
# Reports
# =============================================================================


class TestSubmitReport:
    """Tests for source report submission."""

    def test_new_report_creates_incident(self, manager: IncidentManager) -> None:
        incident, result = manager.submit_report(
            title="Major data breach affects 500,000 users",
            description="Customer records exposed through a misconfigured bucket",
            severity="high",
            source="blog1",
        )

        assert result.is_duplicate is False
        assert incident.source_ids == ("blog1",)
        assert len(manager.list_incidents()) == 1

    def test_cross_source_duplicate_adds_source(self, manager: IncidentManager) -> None:
        original, _ = manager.submit_report(
            title="Major data breach affects 500,000 users",
            description="Customer records exposed through a misconfigured bucket",
            severity="high",
            source="blog1",
        )

        incident, result = manager.submit_report(
            title="Major data breach impacts 500000 users",
            description="Same story from a wire service",
            severity="high",
            source="news_feed",
        )

        assert result.is_duplicate is True
        assert result.matched_incident_id == original.incident_id
        assert incident.incident_id == original.incident_id
        assert incident.source_ids == ("blog1", "news_feed")
        assert len(manager.list_incidents()) == 1
        events = manager.list_timeline(original.incident_id)
        assert [e.event for e in events] == ["created", "source_added"]
        assert events[-1].details == {"source": "news_feed"}

    def test_repeat_from_same_source_records_nothing(self, manager: IncidentManager) -> None:
        original, _ = manager.submit_report(
            title="Critical Security Breach",
            description="Initial report of the breach",
            severity="critical",
            source="cnn_feed",
        )

        incident, result = manager.submit_report(
            title="Critical Security Breach Update",
            description="Follow-up report of the breach",
            severity="critical",
            source="cnn_feed",
        )

        assert result.is_duplicate is True
        assert incident.source_ids == ("cnn_feed",)
        assert len(manager.list_timeline(original.incident_id)) == 1

    def test_source_removed_when_timeline_fails(self) -> None:
        store = InMemoryIncidentRepository()
        manager = IncidentManager(store, SourceRejectingTimelineStore())
        original, _ = manager.submit_report(
            title="Major data breach affects 500,000 users",
            description="Customer records exposed through a misconfigured bucket",
            severity="high",
            source="blog1",
        )

        with pytest.raises(StorageError):
            manager.submit_report(
                title="Major data breach impacts 500000 users",
                description="Same story from a wire service",
                severity="high",
                source="news_feed",
            )

        stored = store.get_by_id(original.incident_id)
        assert stored.source_ids == ("blog1",)
        assert stored.last_updated == original.last_updated
        assert [e.event for e in manager.list_timeline(original.incident_id)] == ["created"]

    def test_check_duplicate_does_not_modify(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident(title="Critical Security Breach")

        result = manager.check_duplicate("Critical Security Breach", "reuters")

        assert result.is_duplicate is True
        assert manager.get_incident(incident.incident_id).source_ids == ("cnn_feed",)
        assert len(manager.list_timeline(incident.incident_id)) == 1

    def test_check_duplicate_scans_in_creation_order(self, manager: IncidentManager, make_incident) -> None:
        first = make_incident(title="Critical Security Breach")
        make_incident(title="Critical Security Breach")

        result = manager.check_duplicate("Critical Security Breach", "reuters")

        assert result.matched_incident_id == first.incident_id

    def test_check_duplicate_with_candidate_pool(self, manager: IncidentManager, make_incident) -> None:
        make_incident(title="Critical Security Breach")

        result = manager.check_duplicate("Critical Security Breach", "reuters", candidate_pool=[])

        assert result.is_duplicate is False


# =============================================================================
# Listing and Retrieval
# =============================================================================


class TestListIncidents:
    """Tests for listing and filtering incidents."""

    def test_creation_order(self, manager: IncidentManager, make_incident) -> None:
        created = [make_incident(title=f"Incident number {i}") for i in range(5)]
        assert manager.list_incidents() == created

    def test_filter_by_status(self, manager: IncidentManager, make_incident) -> None:
        a = make_incident(title="Incident alpha")
        make_incident(title="Incident bravo")
        manager.apply_transition(a.incident_id, "confirmed")

        confirmed = manager.list_incidents(status="confirmed")

        assert [i.incident_id for i in confirmed] == [a.incident_id]

    def test_filter_by_severity(self, manager: IncidentManager, make_incident) -> None:
        make_incident(title="Incident alpha", severity="low")
        b = make_incident(title="Incident bravo", severity="critical")

        assert manager.list_incidents(severity=IncidentSeverity.CRITICAL) == [b]

    def test_pagination(self, manager: IncidentManager, make_incident) -> None:
        created = [make_incident(title=f"Incident number {i}") for i in range(5)]

        assert manager.list_incidents(limit=2, offset=1) == created[1:3]
        assert manager.list_incidents(limit=None, offset=3) == created[3:]

    def test_negative_limit(self, manager: IncidentManager) -> None:
        with pytest.raises(ValidationError):
            manager.list_incidents(limit=-1)

    def test_unknown_filter(self, manager: IncidentManager) -> None:
        with pytest.raises(ValidationError):
            manager.list_incidents(status="closed")

    def test_get_or_raise(self, manager: IncidentManager) -> None:
        with pytest.raises(IncidentNotFoundError) as exc_info:
            manager.get_or_raise("missing")
        assert exc_info.value.incident_id == "missing"


# =============================================================================
# Timeline Annotations
# =============================================================================


class TestTimelineAnnotations:
    """Tests for manual timeline events."""

    def test_add_note(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident()

        event = manager.add_timeline_event(
            incident.incident_id, "note", {"text": "Vendor confirmed exposure"}
        )

        assert event.event == "note"
        assert manager.list_timeline(incident.incident_id)[-1] == event

    def test_reserved_kinds_rejected(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident()
        for kind in ("created", "status_changed", "source_added"):
            with pytest.raises(ValidationError):
                manager.add_timeline_event(incident.incident_id, kind, {})
        assert len(manager.list_timeline(incident.incident_id)) == 1

    def test_empty_kind_rejected(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident()
        with pytest.raises(ValidationError):
            manager.add_timeline_event(incident.incident_id, "  ", {})

    def test_unknown_incident(self, manager: IncidentManager) -> None:
        with pytest.raises(IncidentNotFoundError):
            manager.add_timeline_event("missing", "note", {"text": "hello"})

    def test_unknown_incident_has_empty_timeline(self, manager: IncidentManager) -> None:
        assert manager.list_timeline("missing") == []


# =============================================================================
# Deletion
# =============================================================================


class TestDeleteIncident:
    """Tests for deleting incidents."""

    def test_delete_removes_incident_and_timeline(self, stores: Stores) -> None:
        manager = IncidentManager(stores.incidents, stores.timeline)
        incident = manager.create_incident("Some incident", "Some description", "low")
        manager.apply_transition(incident.incident_id, "confirmed")

        assert manager.delete_incident(incident.incident_id) is True

        assert manager.get_incident(incident.incident_id) is None
        assert manager.list_timeline(incident.incident_id) == []

    def test_delete_missing(self, manager: IncidentManager) -> None:
        assert manager.delete_incident("missing") is False

    def test_transition_after_delete(self, manager: IncidentManager, make_incident) -> None:
        incident = make_incident()
        manager.delete_incident(incident.incident_id)

        with pytest.raises(IncidentNotFoundError):
            manager.apply_transition(incident.incident_id, "confirmed")


# =============================================================================
# Statistics and Callbacks
# =============================================================================


class TestStatsAndCallbacks:
    """Tests for statistics and event callbacks."""

    def test_stats(self, manager: IncidentManager, make_incident) -> None:
        a = make_incident(title="Incident alpha", severity="high")
        make_incident(title="Incident bravo", severity="low")
        manager.apply_transition(a.incident_id, "disputed")

        stats = manager.get_stats()

        assert stats["total"] == 2
        assert stats["active"] == 1
        assert stats["by_status"]["disputed"] == 1
        assert stats["by_status"]["reported"] == 1
        assert stats["by_status"]["resolved"] == 0
        assert stats["by_severity"] == {"critical": 0, "high": 1, "medium": 0, "low": 1}

    def test_callbacks_receive_events(self, manager: IncidentManager) -> None:
        received: list[IncidentEvent] = []
        manager.on_event(received.append)

        incident = manager.create_incident("Some incident", "Some description", "low")
        manager.apply_transition(incident.incident_id, "confirmed")
        manager.add_timeline_event(incident.incident_id, "note", {})
        manager.delete_incident(incident.incident_id)

        assert [e.event_type for e in received] == [
            IncidentEventType.CREATED,
            IncidentEventType.STATUS_CHANGED,
            IncidentEventType.ANNOTATED,
            IncidentEventType.DELETED,
        ]
        assert received[1].old_value == "reported"
        assert received[1].new_value == "confirmed"

    def test_failing_callback_does_not_break_operation(self, manager: IncidentManager) -> None:
        def boom(event: IncidentEvent) -> None:
            raise RuntimeError("callback failure")

        manager.on_event(boom)

        incident = manager.create_incident("Some incident", "Some description", "low")

        assert manager.get_incident(incident.incident_id) is not None

    def test_remove_callback(self, manager: IncidentManager) -> None:
        received: list[IncidentEvent] = []
        manager.on_event(received.append)

        assert manager.remove_callback(received.append) is True
        assert manager.remove_callback(received.append) is False

        manager.create_incident("Some incident", "Some description", "low")
        assert received == []
