"""
In-memory repositories for BreachWatch.

These implement the same protocols as the SQLite repositories and are used
for tests and for the "memory" database backend. State lives in the
repository instance, so two instances never share data.
"""

import copy
import threading
from collections import defaultdict
from dataclasses import replace
from typing import Any

from breachwatch.exceptions import StorageError
from breachwatch.incidents.models import (
    Alert,
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TimelineEvent,
)
from breachwatch.models.base import parse_datetime
from breachwatch.storage.repositories import IncidentRepository


class InMemoryIncidentRepository:
    """
    Thread-safe dict-backed incident storage.

    Dict insertion order is creation order, which list_all preserves.
    """

    def __init__(self) -> None:
        self._incidents: dict[str, Incident] = {}
        self._lock = threading.RLock()

    def create(self, incident: Incident) -> Incident:
        with self._lock:
            if incident.incident_id in self._incidents:
                raise StorageError(
                    f"Incident already exists: {incident.incident_id}",
                    {"incident_id": incident.incident_id},
                )
            self._incidents[incident.incident_id] = incident
            return incident

    def get_by_id(self, incident_id: str) -> Incident | None:
        with self._lock:
            return self._incidents.get(incident_id)

    def list_all(
        self,
        status: str | None = None,
        severity: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Incident]:
        with self._lock:
            incidents = list(self._incidents.values())

        if status:
            incidents = [i for i in incidents if i.status.value == status]
        if severity:
            incidents = [i for i in incidents if i.severity.value == severity]

        end = None if limit is None else offset + limit
        return incidents[offset:end]

    def update(self, incident_id: str, /, **fields: Any) -> Incident | None:
        unknown = set(fields) - set(IncidentRepository.UPDATABLE_FIELDS)
        if unknown:
            raise StorageError(
                f"Cannot update incident fields: {', '.join(sorted(unknown))}",
                {"incident_id": incident_id},
            )

        with self._lock:
            current = self._incidents.get(incident_id)
            if current is None:
                return None
            updated = replace(current, **self._coerce(fields))
            self._incidents[incident_id] = updated
            return updated

    def delete(self, incident_id: str) -> bool:
        with self._lock:
            return self._incidents.pop(incident_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._incidents)

    def _coerce(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Convert raw values to the types the Incident model holds."""
        coerced = dict(fields)
        if "status" in coerced:
            coerced["status"] = IncidentStatus(
                getattr(coerced["status"], "value", coerced["status"])
            )
        if "severity" in coerced:
            coerced["severity"] = IncidentSeverity(
                getattr(coerced["severity"], "value", coerced["severity"])
            )
        for name in ("discovery_date", "last_updated"):
            if name in coerced:
                coerced[name] = parse_datetime(coerced[name])
        for name in ("source_ids", "classifications"):
            if name in coerced:
                coerced[name] = tuple(coerced[name])
        return coerced


class InMemoryTimelineRepository:
    """Thread-safe timeline storage keyed by incident id."""

    def __init__(self) -> None:
        self._events: dict[str, list[TimelineEvent]] = defaultdict(list)
        self._lock = threading.Lock()

    def append(self, event: TimelineEvent) -> TimelineEvent:
        stored = _detached(event)
        with self._lock:
            self._events[event.incident_id].append(stored)
        return _detached(stored)

    def list_by_incident(self, incident_id: str) -> list[TimelineEvent]:
        with self._lock:
            events = list(self._events.get(incident_id, ()))
        return [_detached(e) for e in events]

    def delete_by_incident(self, incident_id: str) -> bool:
        with self._lock:
            return bool(self._events.pop(incident_id, None))


class InMemoryAlertRepository:
    """Thread-safe storage of alerts and webhook subscriptions."""

    def __init__(self) -> None:
        self._alerts: dict[str, list[Alert]] = defaultdict(list)
        self._webhooks: dict[str, list[str]] = defaultdict(list)
        self._lock = threading.Lock()

    def add_alert(self, alert: Alert) -> Alert:
        with self._lock:
            self._alerts[alert.incident_id].append(alert)
        return alert

    def list_alerts(self, incident_id: str) -> list[Alert]:
        with self._lock:
            return list(self._alerts.get(incident_id, ()))

    def delete_alerts(self, incident_id: str) -> bool:
        with self._lock:
            return bool(self._alerts.pop(incident_id, None))

    def add_webhook(self, incident_id: str, url: str) -> None:
        with self._lock:
            urls = self._webhooks[incident_id]
            if url not in urls:
                urls.append(url)

    def list_webhooks(self, incident_id: str) -> list[str]:
        with self._lock:
            return list(self._webhooks.get(incident_id, ()))

    def delete_webhooks(self, incident_id: str) -> bool:
        with self._lock:
            return bool(self._webhooks.pop(incident_id, None))


def _detached(event: TimelineEvent) -> TimelineEvent:
    """Copy an event so its details share no state with the stored one."""
    return replace(event, details=copy.deepcopy(event.details))
