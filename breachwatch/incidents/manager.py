"""
Incident management for BreachWatch.

This module provides the IncidentManager class, the single entry point that
application code (HTTP handlers, the CLI) uses to create, transition,
annotate, deduplicate, and delete incidents.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from breachwatch.exceptions import (
    IncidentNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from breachwatch.incidents.deduplication import DeduplicationEngine
from breachwatch.incidents.lifecycle import LifecycleStateMachine
from breachwatch.incidents.models import (
    DuplicationResult,
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TimelineEvent,
    TimelineEventKind,
    parse_severity,
    parse_status,
)
from breachwatch.incidents.timeline import TimelineLedger
from breachwatch.models.base import generate_uuid, parse_datetime, utc_now
from breachwatch.storage.interfaces import IncidentStore, TimelineStore

logger = logging.getLogger("breachwatch.incidents.manager")

# Event kinds only the manager itself may write to a timeline.
RESERVED_EVENT_KINDS = frozenset(
    {
        TimelineEventKind.CREATED.value,
        TimelineEventKind.STATUS_CHANGED.value,
        TimelineEventKind.SOURCE_ADDED.value,
    }
)


class IncidentEventType(Enum):
    """Kinds of events emitted to manager callbacks."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    SOURCE_ADDED = "source_added"
    ANNOTATED = "annotated"
    DELETED = "deleted"


@dataclass
class IncidentEvent:
    """
    Event emitted when an incident changes.

    Attributes:
        event_type: Type of event that occurred.
        incident_id: ID of the incident.
        incident: The incident at the time of the event.
        old_value: Previous value (for changes).
        new_value: New value (for changes).
        timestamp: When the event occurred.
    """

    event_type: IncidentEventType
    incident_id: str
    incident: Incident
    old_value: str | None = None
    new_value: str | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.timestamp is None:
            self.timestamp = utc_now()


# Type alias for incident callbacks
IncidentCallback = Callable[[IncidentEvent], None]


class IncidentManager:
    """
    Coordinates incident storage, lifecycle, timeline, and deduplication.

    The stores are injected so their lifetime belongs to the caller; the
    manager keeps no incident state of its own.

    Example:
        Using the IncidentManager::

            from breachwatch.incidents import IncidentManager
            from breachwatch.storage import (
                InMemoryIncidentRepository,
                InMemoryTimelineRepository,
            )

            manager = IncidentManager(
                InMemoryIncidentRepository(),
                InMemoryTimelineRepository(),
            )

            incident, result = manager.submit_report(
                title="Major data breach affects 500,000 users",
                description="Customer records exposed through a misconfigured bucket",
                severity="high",
                source="blog1",
            )

            manager.apply_transition(incident.incident_id, "confirmed")
            for event in manager.list_timeline(incident.incident_id):
                print(event.event, event.details)
    """

    def __init__(
        self,
        incident_store: IncidentStore,
        timeline_store: TimelineStore,
        dedup_engine: DeduplicationEngine | None = None,
    ) -> None:
        """
        Initialize the IncidentManager.

        Args:
            incident_store: Storage for incident records.
            timeline_store: Storage for timeline events.
            dedup_engine: Duplicate detector; defaults to the standard
                thresholds.
        """
        self._store = incident_store
        self._ledger = TimelineLedger(timeline_store)
        self._lifecycle = LifecycleStateMachine(incident_store, self._ledger)
        self._dedup = dedup_engine or DeduplicationEngine()
        self._callbacks: list[IncidentCallback] = []
        self._report_lock = threading.Lock()

    @property
    def dedup_engine(self) -> DeduplicationEngine:
        """Get the duplicate detector in use."""
        return self._dedup

    # -------------------------------------------------------------------------
    # Incident Creation
    # -------------------------------------------------------------------------

    def create_incident(
        self,
        title: str,
        description: str,
        severity: IncidentSeverity | str,
        discovery_date: datetime | str | None = None,
        source_ids: Sequence[str] | None = None,
        classifications: Sequence[str] | None = None,
    ) -> Incident:
        """
        Create a new incident in the REPORTED status.

        A "created" timeline event is appended. If that append fails, the
        incident is removed again so no incident exists without its first
        timeline entry.

        Args:
            title: Short headline for the incident.
            description: Detailed description of what occurred.
            severity: Severity, as an enum member or its string value.
            discovery_date: When the incident was discovered; defaults to now.
            source_ids: Identifiers of the reporting sources.
            classifications: Classification tags.

        Returns:
            The created Incident.

        Raises:
            ValidationError: If severity or discovery_date is malformed.
        """
        parsed_severity = parse_severity(severity)
        try:
            discovered = parse_datetime(discovery_date) or utc_now()
        except (TypeError, ValueError):
            raise ValidationError(
                f"Invalid discovery date: {discovery_date!r}",
                {"field": "discovery_date", "value": str(discovery_date)},
            ) from None

        incident = Incident(
            incident_id=generate_uuid(),
            title=title,
            description=description,
            severity=parsed_severity,
            status=IncidentStatus.REPORTED,
            discovery_date=discovered,
            last_updated=max(utc_now(), discovered),
            source_ids=tuple(source_ids or ()),
            classifications=tuple(classifications or ()),
        )

        created = self._store.create(incident)
        try:
            self._ledger.append(
                created.incident_id,
                TimelineEventKind.CREATED.value,
                {"status": IncidentStatus.REPORTED.value},
            )
        except Exception:
            logger.error(
                f"Timeline append failed for new incident {created.incident_id}; "
                "rolling back creation"
            )
            self._store.delete(created.incident_id)
            raise

        logger.info(
            f"Created incident {created.incident_id}: {created.title} "
            f"(severity={created.severity.value})"
        )
        self._emit_event(
            IncidentEventType.CREATED,
            created,
            new_value=IncidentStatus.REPORTED.value,
        )
        return created

    def submit_report(
        self,
        title: str,
        description: str,
        severity: IncidentSeverity | str,
        source: str,
        discovery_date: datetime | str | None = None,
        classifications: Sequence[str] | None = None,
    ) -> tuple[Incident, DuplicationResult]:
        """
        Ingest a report from a source, creating an incident only if new.

        The report is checked against every known incident. When it
        duplicates one, that incident is returned; if the reporting source
        was not yet listed on it, the source is added and a "source_added"
        timeline event recorded.

        Args:
            title: Title of the report.
            description: Body of the report.
            severity: Severity assigned by the source.
            source: Identifier of the reporting source.
            discovery_date: When the source discovered the incident.
            classifications: Classification tags.

        Returns:
            Tuple of (incident, duplication result). The incident is the
            matched one for duplicates and the newly created one otherwise.
        """
        with self._report_lock:
            result = self.check_duplicate(title, source)
            if not result.is_duplicate:
                incident = self.create_incident(
                    title=title,
                    description=description,
                    severity=severity,
                    discovery_date=discovery_date,
                    source_ids=[source],
                    classifications=classifications,
                )
                return incident, result

            matched_id = result.matched_incident_id or ""
            logger.info(
                f"Report from {source} duplicates incident {matched_id} "
                f"(similarity={result.similarity:.3f})"
            )
            return self._record_source(matched_id, source), result

    # -------------------------------------------------------------------------
    # Incident Retrieval
    # -------------------------------------------------------------------------

    def get_incident(self, incident_id: str) -> Incident | None:
        """
        Get an incident by ID.

        Args:
            incident_id: The incident ID.

        Returns:
            The Incident if found, None otherwise.
        """
        return self._store.get_by_id(incident_id)

    def get_or_raise(self, incident_id: str) -> Incident:
        """
        Get an incident by ID, raising if not found.

        Raises:
            IncidentNotFoundError: If incident is not found.
        """
        incident = self.get_incident(incident_id)
        if incident is None:
            raise IncidentNotFoundError(incident_id)
        return incident

    def list_incidents(
        self,
        status: IncidentStatus | str | None = None,
        severity: IncidentSeverity | str | None = None,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Incident]:
        """
        List incidents with optional filters, oldest first.

        Args:
            status: Filter by status.
            severity: Filter by severity.
            limit: Maximum number of incidents to return; None for all.
            offset: Number of incidents to skip.

        Returns:
            List of matching Incidents.

        Raises:
            ValidationError: If a filter value is not a known status or
                severity, or limit/offset are negative.
        """
        if (limit is not None and limit < 0) or offset < 0:
            raise ValidationError(
                "limit and offset must not be negative",
                {"limit": limit, "offset": offset},
            )
        return self._store.list_all(
            status=parse_status(status).value if status else None,
            severity=parse_severity(severity).value if severity else None,
            limit=limit,
            offset=offset,
        )

    # -------------------------------------------------------------------------
    # Status Management
    # -------------------------------------------------------------------------

    def apply_transition(
        self,
        incident_id: str,
        new_status: IncidentStatus | str,
    ) -> Incident:
        """
        Move an incident to a new status.

        Args:
            incident_id: The incident ID.
            new_status: Target status.

        Returns:
            The updated Incident.

        Raises:
            ValidationError: If new_status is not a known status.
            IncidentNotFoundError: If the incident does not exist.
            InvalidTransitionError: If the move is not allowed from the
                current status.
        """
        try:
            updated, old_status = self._lifecycle.apply_transition(
                incident_id, new_status
            )
        except InvalidTransitionError as e:
            logger.warning(
                f"Rejected transition for incident {incident_id}: "
                f"{e.current_status} -> {e.requested_status}"
            )
            raise

        logger.info(
            f"Updated incident {incident_id} status: "
            f"{old_status.value} -> {updated.status.value}"
        )
        self._emit_event(
            IncidentEventType.STATUS_CHANGED,
            updated,
            old_value=old_status.value,
            new_value=updated.status.value,
        )
        return updated

    # -------------------------------------------------------------------------
    # Timeline
    # -------------------------------------------------------------------------

    def list_timeline(self, incident_id: str) -> list[TimelineEvent]:
        """
        Get an incident's timeline in append order.

        Unknown incidents have an empty timeline; use get_or_raise first
        when existence matters.
        """
        return self._ledger.list(incident_id)

    def add_timeline_event(
        self,
        incident_id: str,
        event: str,
        details: dict[str, Any] | None = None,
    ) -> TimelineEvent:
        """
        Append an analyst annotation to an existing incident's timeline.

        Args:
            incident_id: The incident ID.
            event: Event kind, e.g. "note".
            details: Free-form payload.

        Returns:
            The appended TimelineEvent.

        Raises:
            ValidationError: If event is empty or a kind the manager writes
                itself ("created", "status_changed", "source_added").
            IncidentNotFoundError: If the incident does not exist.
        """
        kind = (event or "").strip()
        if not kind:
            raise ValidationError("Timeline event kind is required", {"field": "event"})
        if kind in RESERVED_EVENT_KINDS:
            raise ValidationError(
                f"Timeline event kind {kind!r} is reserved",
                {"field": "event", "value": kind},
            )

        with self._lifecycle.lock_for(incident_id):
            incident = self.get_or_raise(incident_id)
            appended = self._ledger.append(incident_id, kind, details)

        logger.debug(f"Annotated incident {incident_id} with {kind!r}")
        self._emit_event(IncidentEventType.ANNOTATED, incident, new_value=kind)
        return appended

    # -------------------------------------------------------------------------
    # Deduplication
    # -------------------------------------------------------------------------

    def check_duplicate(
        self,
        title: str,
        source: str,
        candidate_pool: Sequence[Incident] | None = None,
    ) -> DuplicationResult:
        """
        Check whether a report restates a known incident.

        Args:
            title: Title of the incoming report.
            source: Identifier of the reporting source.
            candidate_pool: Incidents to compare against; defaults to every
                stored incident in creation order.

        Returns:
            The DuplicationResult. Nothing is modified.
        """
        if candidate_pool is None:
            candidate_pool = self._store.list_all()
        return self._dedup.check_duplicate(title, source, candidate_pool)

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def delete_incident(self, incident_id: str) -> bool:
        """
        Delete an incident together with its timeline.

        Args:
            incident_id: The incident ID.

        Returns:
            True if the incident existed.
        """
        with self._lifecycle.lock_for(incident_id):
            incident = self._store.get_by_id(incident_id)
            existed = self._store.delete(incident_id)
            self._ledger.delete_all(incident_id)

        if existed and incident is not None:
            logger.info(f"Deleted incident {incident_id}")
            self._emit_event(IncidentEventType.DELETED, incident)
        return existed

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """
        Count incidents by status and severity.

        Returns:
            Dictionary with "total", "active", "by_status", and
            "by_severity" keys. Every status and severity is present.
        """
        by_status = {status.value: 0 for status in IncidentStatus}
        by_severity = {severity.value: 0 for severity in IncidentSeverity}
        active = 0
        incidents = self._store.list_all()
        for incident in incidents:
            by_status[incident.status.value] += 1
            by_severity[incident.severity.value] += 1
            if incident.is_active():
                active += 1
        return {
            "total": len(incidents),
            "active": active,
            "by_status": by_status,
            "by_severity": by_severity,
        }

    # -------------------------------------------------------------------------
    # Event Callbacks
    # -------------------------------------------------------------------------

    def on_event(self, callback: IncidentCallback) -> None:
        """
        Register a callback for incident events.

        Args:
            callback: Function to call when events occur.
        """
        self._callbacks.append(callback)

    def remove_callback(self, callback: IncidentCallback) -> bool:
        """
        Remove a callback.

        Returns:
            True if the callback was removed, False if not found.
        """
        try:
            self._callbacks.remove(callback)
            return True
        except ValueError:
            return False

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _record_source(self, incident_id: str, source: str) -> Incident:
        """Add a source to an incident's source list if it is not there yet."""
        with self._lifecycle.lock_for(incident_id):
            incident = self.get_or_raise(incident_id)
            if incident.has_source(source):
                return incident

            updated = self._store.update(
                incident_id,
                source_ids=incident.source_ids + (source,),
                last_updated=max(utc_now(), incident.discovery_date),
            )
            if updated is None:
                raise IncidentNotFoundError(incident_id)
            try:
                self._ledger.append(
                    incident_id,
                    TimelineEventKind.SOURCE_ADDED.value,
                    {"source": source},
                )
            except Exception:
                logger.error(
                    f"Timeline append failed for {incident_id}; "
                    f"removing source {source!r}"
                )
                self._store.update(
                    incident_id,
                    source_ids=incident.source_ids,
                    last_updated=incident.last_updated,
                )
                raise

        self._emit_event(IncidentEventType.SOURCE_ADDED, updated, new_value=source)
        return updated

    def _emit_event(
        self,
        event_type: IncidentEventType,
        incident: Incident,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        """Emit an event to all registered callbacks."""
        event = IncidentEvent(
            event_type=event_type,
            incident_id=incident.incident_id,
            incident=incident,
            old_value=old_value,
            new_value=new_value,
        )
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Incident callback failed for {event_type.value} "
                    f"on {incident.incident_id}"
                )
