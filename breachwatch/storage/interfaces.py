"""
Storage protocols consumed by the BreachWatch core.

The incident manager, lifecycle state machine, and timeline ledger depend
only on these protocols. Both the SQLite repositories and the in-memory
repositories satisfy them, and callers choose which one to inject.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from breachwatch.incidents.models import Alert, Incident, TimelineEvent


class IncidentStore(Protocol):
    """Keyed storage of incident records."""

    def create(self, incident: Incident) -> Incident:
        """Persist a new incident and return it as stored."""
        ...

    def get_by_id(self, incident_id: str) -> Incident | None:
        """Return the incident, or None if it does not exist."""
        ...

    def list_all(
        self,
        status: str | None = None,
        severity: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Incident]:
        """Return incidents in creation order, oldest first."""
        ...

    def update(self, incident_id: str, /, **fields: Any) -> Incident | None:
        """Apply field updates and return the new record, or None if missing."""
        ...

    def delete(self, incident_id: str) -> bool:
        """Delete the incident; return whether it existed."""
        ...


class TimelineStore(Protocol):
    """Append-only storage of timeline events."""

    def append(self, event: TimelineEvent) -> TimelineEvent:
        """Store an event at the end of its incident's timeline."""
        ...

    def list_by_incident(self, incident_id: str) -> list[TimelineEvent]:
        """Return the incident's events in append order."""
        ...

    def delete_by_incident(self, incident_id: str) -> bool:
        """Delete every event of the incident; return whether any existed."""
        ...


class AlertStore(Protocol):
    """Storage of alerts and per-incident webhook subscriptions."""

    def add_alert(self, alert: Alert) -> Alert:
        ...

    def list_alerts(self, incident_id: str) -> list[Alert]:
        ...

    def delete_alerts(self, incident_id: str) -> bool:
        ...

    def add_webhook(self, incident_id: str, url: str) -> None:
        ...

    def list_webhooks(self, incident_id: str) -> list[str]:
        ...

    def delete_webhooks(self, incident_id: str) -> bool:
        ...
