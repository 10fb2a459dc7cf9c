"""
Tests for the incident lifecycle state machine.

Covers the transition table, timeline bookkeeping on success and failure,
rollback when the timeline cannot be written, and concurrent transitions.
"""

import threading
from datetime import timedelta

import pytest

from breachwatch.exceptions import (
    IncidentNotFoundError,
    InvalidTransitionError,
    StorageError,
    ValidationError,
)
from breachwatch.incidents.lifecycle import (
    VALID_TRANSITIONS,
    LifecycleStateMachine,
    allowed_transitions,
    is_valid_transition,
)
from breachwatch.incidents.manager import IncidentManager
from breachwatch.incidents.models import IncidentStatus, TimelineEvent
from breachwatch.incidents.timeline import TimelineLedger
from breachwatch.models.base import utc_now
from breachwatch.storage import InMemoryIncidentRepository, InMemoryTimelineRepository

S = IncidentStatus

# Shortest path from REPORTED to each status.
PATHS = {
    S.REPORTED: [],
    S.CONFIRMED: [S.CONFIRMED],
    S.ONGOING: [S.CONFIRMED, S.ONGOING],
    S.MITIGATED: [S.CONFIRMED, S.ONGOING, S.MITIGATED],
    S.RESOLVED: [S.CONFIRMED, S.ONGOING, S.MITIGATED, S.RESOLVED],
    S.DISPUTED: [S.DISPUTED],
}


class FlakyTimelineStore(InMemoryTimelineRepository):
    """Timeline store that refuses to record status changes."""

    def append(self, event: TimelineEvent) -> TimelineEvent:
        if event.event == "status_changed":
            raise StorageError("timeline unavailable")
        return super().append(event)


def _drive(manager: IncidentManager, incident_id: str, target: IncidentStatus) -> None:
    for status in PATHS[target]:
        manager.apply_transition(incident_id, status)


class TestTransitionTable:
    """Tests for the static transition table."""

    def test_every_status_has_entry(self) -> None:
        assert set(VALID_TRANSITIONS) == set(IncidentStatus)

    def test_forward_path(self) -> None:
        assert is_valid_transition(S.REPORTED, S.CONFIRMED)
        assert is_valid_transition(S.CONFIRMED, S.ONGOING)
        assert is_valid_transition(S.ONGOING, S.MITIGATED)
        assert is_valid_transition(S.MITIGATED, S.RESOLVED)

    def test_disputed_reachable_from_every_other_status(self) -> None:
        for status in IncidentStatus:
            if status is not S.DISPUTED:
                assert is_valid_transition(status, S.DISPUTED), status

    def test_disputed_exits(self) -> None:
        assert allowed_transitions(S.DISPUTED) == frozenset({S.REPORTED, S.CONFIRMED})

    def test_resolved_only_to_disputed(self) -> None:
        assert allowed_transitions(S.RESOLVED) == frozenset({S.DISPUTED})

    def test_no_self_transitions(self) -> None:
        for status in IncidentStatus:
            assert not is_valid_transition(status, status)

    def test_no_skipping(self) -> None:
        assert not is_valid_transition(S.REPORTED, S.RESOLVED)
        assert not is_valid_transition(S.REPORTED, S.ONGOING)
        assert not is_valid_transition(S.CONFIRMED, S.MITIGATED)


class TestApplyTransition:
    """Tests for applying transitions through the manager."""

    def test_valid_transition_updates_status(self, manager, make_incident) -> None:
        incident = make_incident()

        updated = manager.apply_transition(incident.incident_id, "confirmed")

        assert updated.status == S.CONFIRMED
        assert manager.get_incident(incident.incident_id).status == S.CONFIRMED

    def test_accepts_any_case(self, manager, make_incident) -> None:
        incident = make_incident()
        assert manager.apply_transition(incident.incident_id, "CONFIRMED").status == S.CONFIRMED

    def test_success_appends_exactly_one_event(self, manager, make_incident) -> None:
        incident = make_incident()
        before = len(manager.list_timeline(incident.incident_id))

        manager.apply_transition(incident.incident_id, S.CONFIRMED)

        events = manager.list_timeline(incident.incident_id)
        assert len(events) == before + 1
        assert events[-1].event == "status_changed"
        assert events[-1].details == {"old_status": "reported", "new_status": "confirmed"}

    def test_reported_to_resolved_rejected(self, manager, make_incident) -> None:
        incident = make_incident()
        timeline_before = manager.list_timeline(incident.incident_id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            manager.apply_transition(incident.incident_id, S.RESOLVED)

        assert exc_info.value.current_status == "reported"
        assert exc_info.value.requested_status == "resolved"
        assert manager.get_incident(incident.incident_id).status == S.REPORTED
        assert manager.list_timeline(incident.incident_id) == timeline_before

    @pytest.mark.parametrize("start", [s for s in IncidentStatus if s is not S.DISPUTED])
    def test_dispute_from_any_status(self, manager, make_incident, start) -> None:
        incident = make_incident()
        _drive(manager, incident.incident_id, start)

        updated = manager.apply_transition(incident.incident_id, S.DISPUTED)

        assert updated.status == S.DISPUTED

    @pytest.mark.parametrize("target", list(IncidentStatus))
    def test_from_disputed(self, manager, make_incident, target) -> None:
        incident = make_incident()
        manager.apply_transition(incident.incident_id, S.DISPUTED)

        if target in (S.REPORTED, S.CONFIRMED):
            assert manager.apply_transition(incident.incident_id, target).status == target
        else:
            with pytest.raises(InvalidTransitionError):
                manager.apply_transition(incident.incident_id, target)

    def test_full_lifecycle_timeline(self, manager, make_incident) -> None:
        incident = make_incident()
        _drive(manager, incident.incident_id, S.RESOLVED)

        events = manager.list_timeline(incident.incident_id)

        assert [e.event for e in events] == ["created"] + ["status_changed"] * 4
        assert [e.details.get("new_status") for e in events[1:]] == [
            "confirmed",
            "ongoing",
            "mitigated",
            "resolved",
        ]

    def test_unknown_status_is_validation_error(self, manager, make_incident) -> None:
        incident = make_incident()
        with pytest.raises(ValidationError):
            manager.apply_transition(incident.incident_id, "closed")

    def test_unknown_incident(self, manager) -> None:
        with pytest.raises(IncidentNotFoundError):
            manager.apply_transition("missing", S.CONFIRMED)

    def test_last_updated_advances(self, manager, make_incident) -> None:
        incident = make_incident()

        updated = manager.apply_transition(incident.incident_id, S.CONFIRMED)

        assert updated.last_updated >= incident.last_updated
        assert updated.last_updated >= updated.discovery_date

    def test_last_updated_not_before_future_discovery(self, manager, make_incident) -> None:
        future = utc_now() + timedelta(days=2)
        incident = make_incident(discovery_date=future)

        updated = manager.apply_transition(incident.incident_id, S.CONFIRMED)

        assert updated.last_updated >= future


class TestTransitionRollback:
    """Tests for reverting a status write when the timeline append fails."""

    def test_status_reverted_when_append_fails(self) -> None:
        store = InMemoryIncidentRepository()
        timeline = FlakyTimelineStore()
        manager = IncidentManager(store, timeline)
        incident = manager.create_incident(
            "Ransomware hits regional hospital", "Systems encrypted, intake diverted", "high"
        )

        with pytest.raises(StorageError):
            manager.apply_transition(incident.incident_id, S.CONFIRMED)

        stored = store.get_by_id(incident.incident_id)
        assert stored.status == S.REPORTED
        assert stored.last_updated == incident.last_updated
        assert [e.event for e in timeline.list_by_incident(incident.incident_id)] == ["created"]

    def test_state_machine_directly(self) -> None:
        store = InMemoryIncidentRepository()
        ledger = TimelineLedger(InMemoryTimelineRepository())
        machine = LifecycleStateMachine(store, ledger)
        manager = IncidentManager(store, InMemoryTimelineRepository())
        incident = manager.create_incident(
            "Credential dump posted online", "Dump of 2M logins on a forum", "medium"
        )

        updated, previous = machine.apply_transition(incident.incident_id, "confirmed")

        assert previous == S.REPORTED
        assert updated.status == S.CONFIRMED
        assert len(ledger.list(incident.incident_id)) == 1


class TestConcurrentTransitions:
    """Tests for serialized transitions on one incident."""

    def test_only_one_concurrent_transition_wins(self, manager, make_incident) -> None:
        incident = make_incident()
        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                manager.apply_transition(incident.incident_id, S.CONFIRMED)
                result = "ok"
            except InvalidTransitionError:
                result = "rejected"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("rejected") == 7
        status_events = [
            e for e in manager.list_timeline(incident.incident_id) if e.event == "status_changed"
        ]
        assert len(status_events) == 1


class TestTransitionLocks:
    """Per-incident locks are released once nobody uses them."""

    def test_unknown_ids_leave_no_locks(self, manager) -> None:
        for i in range(100):
            with pytest.raises(IncidentNotFoundError):
                manager.apply_transition(f"missing-{i}", S.CONFIRMED)
            with pytest.raises(IncidentNotFoundError):
                manager.add_timeline_event(f"missing-{i}", "note", {"text": "x"})

        assert manager._lifecycle._locks == {}

    def test_locks_dropped_after_success_and_delete(self, manager, make_incident) -> None:
        incident = make_incident()

        manager.apply_transition(incident.incident_id, S.CONFIRMED)
        manager.delete_incident(incident.incident_id)
        manager.delete_incident("never-existed")

        assert manager._lifecycle._locks == {}

    def test_lock_entry_shared_while_held(self) -> None:
        machine = LifecycleStateMachine(
            InMemoryIncidentRepository(), TimelineLedger(InMemoryTimelineRepository())
        )

        with machine.lock_for("inc-1"):
            assert list(machine._locks) == ["inc-1"]
            with pytest.raises(IncidentNotFoundError):
                machine.apply_transition("inc-2", S.CONFIRMED)
            assert list(machine._locks) == ["inc-1"]

        assert machine._locks == {}
