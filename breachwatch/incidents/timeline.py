"""
Timeline ledger for BreachWatch incidents.

The ledger is an append-only record of everything that happened to an
incident. It wraps a TimelineStore and stamps each event with a fresh id
and the current time.
"""

import copy
from typing import Any

from breachwatch.incidents.models import TimelineEvent
from breachwatch.models.base import generate_uuid, utc_now
from breachwatch.storage.interfaces import TimelineStore


class TimelineLedger:
    """
    Append-only audit log of incident events.

    Listing is a query, not an existence check: an unknown incident simply
    has an empty timeline.
    """

    def __init__(self, store: TimelineStore) -> None:
        """
        Initialize the ledger.

        Args:
            store: Backing storage for timeline events.
        """
        self._store = store

    def append(
        self,
        incident_id: str,
        event: str,
        details: dict[str, Any] | None = None,
    ) -> TimelineEvent:
        """
        Append a new event to an incident's timeline.

        Args:
            incident_id: The incident the event belongs to.
            event: Event kind, e.g. "status_changed".
            details: Event-specific payload.

        Returns:
            The stored TimelineEvent.
        """
        return self._store.append(
            TimelineEvent(
                event_id=generate_uuid(),
                incident_id=incident_id,
                event=event,
                details=copy.deepcopy(details or {}),
                timestamp=utc_now(),
            )
        )

    def delete_all(self, incident_id: str) -> bool:
        """
        Remove every event for an incident.

        Returns:
            True if any events existed.
        """
        return self._store.delete_by_incident(incident_id)

    def list(self, incident_id: str) -> list[TimelineEvent]:
        """Return the incident's events in the order they were appended."""
        return self._store.list_by_incident(incident_id)
