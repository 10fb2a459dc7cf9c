"""
SQLite repository classes for BreachWatch data access.

Each repository implements one of the protocols in
breachwatch.storage.interfaces on top of a shared Database and converts
rows to and from the frozen incident models.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from breachwatch.exceptions import StorageError
from breachwatch.incidents.models import (
    Alert,
    AlertType,
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TimelineEvent,
)
from breachwatch.models.base import parse_datetime, utc_now
from breachwatch.storage.database import Database


class BaseRepository:
    """
    Base class for all repositories.

    Provides common functionality for database operations.
    """

    def __init__(self, db: Database) -> None:
        """
        Initialize the repository.

        Args:
            db: The Database instance to use for operations.
        """
        self.db = db

    def _serialize_json(self, value: Any) -> str:
        """Serialize a value to JSON string."""
        if isinstance(value, tuple):
            value = list(value)
        return json.dumps(value)

    def _deserialize_json(self, value: str | None, default: Any = None) -> Any:
        """Deserialize a JSON string to a Python object."""
        if value is None:
            return default
        return json.loads(value)

    def _format_datetime(self, dt: datetime) -> str:
        """Format a datetime to ISO string."""
        return dt.isoformat()

    def _parse_datetime(self, value: str) -> datetime:
        """Parse an ISO datetime string."""
        parsed = parse_datetime(value)
        if parsed is None:
            raise StorageError("Missing timestamp in stored row")
        return parsed


class IncidentRepository(BaseRepository):
    """
    Repository for incident records.

    Incidents are listed in creation order, oldest first.
    """

    # Columns update() may change, mapped to how their values are stored.
    UPDATABLE_FIELDS = (
        "title",
        "description",
        "severity",
        "status",
        "discovery_date",
        "last_updated",
        "source_ids",
        "classifications",
    )

    def create(self, incident: Incident) -> Incident:
        """
        Persist a new incident.

        Raises:
            StorageError: If an incident with the same id already exists.
        """
        self.db.execute_write(
            """
            INSERT INTO incidents
                (id, title, description, severity, status, discovery_date,
                 last_updated, source_ids, classifications)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                incident.incident_id,
                incident.title,
                incident.description,
                incident.severity.value,
                incident.status.value,
                self._format_datetime(incident.discovery_date),
                self._format_datetime(incident.last_updated),
                self._serialize_json(incident.source_ids),
                self._serialize_json(incident.classifications),
            ),
        )
        return incident

    def get_by_id(self, incident_id: str) -> Incident | None:
        """Get an incident by ID."""
        row = self.db.execute_one(
            "SELECT * FROM incidents WHERE id = ?", (incident_id,)
        )
        return self._row_to_incident(row) if row else None

    def list_all(
        self,
        status: str | None = None,
        severity: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Incident]:
        """List incidents with optional filters."""
        conditions = []
        params: list[Any] = []

        if status:
            conditions.append("status = ?")
            params.append(status)
        if severity:
            conditions.append("severity = ?")
            params.append(severity)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        # SQLite treats a negative LIMIT as "no limit"
        params.extend([-1 if limit is None else limit, offset])

        rows = self.db.execute(
            f"""
            SELECT * FROM incidents
            {where}
            ORDER BY seq ASC
            LIMIT ? OFFSET ?
            """,
            tuple(params),
        )
        return [self._row_to_incident(r) for r in rows]

    def update(self, incident_id: str, /, **fields: Any) -> Incident | None:
        """
        Update incident fields.

        Args:
            incident_id: The incident ID.
            **fields: Column values; enums, datetimes, and sequences are
                converted to their stored form.

        Returns:
            The updated Incident, or None if it does not exist.

        Raises:
            StorageError: If a field is not updatable.
        """
        unknown = set(fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise StorageError(
                f"Cannot update incident fields: {', '.join(sorted(unknown))}",
                {"incident_id": incident_id},
            )
        if not fields:
            return self.get_by_id(incident_id)

        updates = []
        params: list[Any] = []
        for name, value in fields.items():
            updates.append(f"{name} = ?")
            params.append(self._to_column(value))
        params.append(incident_id)

        rows = self.db.execute_write(
            f"UPDATE incidents SET {', '.join(updates)} WHERE id = ?",
            tuple(params),
        )
        if rows == 0:
            return None
        return self.get_by_id(incident_id)

    def delete(self, incident_id: str) -> bool:
        """Delete an incident; its timeline, alerts, and webhooks cascade."""
        return (
            self.db.execute_write(
                "DELETE FROM incidents WHERE id = ?", (incident_id,)
            )
            > 0
        )

    def count(self) -> int:
        row = self.db.execute_one("SELECT COUNT(*) AS n FROM incidents")
        return int(row["n"]) if row else 0

    def _to_column(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return self._format_datetime(value)
        if isinstance(value, (list, tuple)):
            return self._serialize_json(value)
        return value

    def _row_to_incident(self, row: dict[str, Any]) -> Incident:
        return Incident(
            incident_id=row["id"],
            title=row["title"],
            description=row["description"],
            severity=IncidentSeverity(row["severity"]),
            status=IncidentStatus(row["status"]),
            discovery_date=self._parse_datetime(row["discovery_date"]),
            last_updated=self._parse_datetime(row["last_updated"]),
            source_ids=tuple(self._deserialize_json(row["source_ids"], [])),
            classifications=tuple(self._deserialize_json(row["classifications"], [])),
        )


class TimelineRepository(BaseRepository):
    """
    Repository for incident timeline events.

    Events are never updated; they are listed in append order.
    """

    def append(self, event: TimelineEvent) -> TimelineEvent:
        """
        Store an event at the end of its incident's timeline.

        Raises:
            StorageError: If the owning incident does not exist.
        """
        self.db.execute_write(
            """
            INSERT INTO incident_timeline (id, incident_id, event, details, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.incident_id,
                event.event,
                self._serialize_json(event.details),
                self._format_datetime(event.timestamp),
            ),
        )
        return event

    def list_by_incident(self, incident_id: str) -> list[TimelineEvent]:
        """Get an incident's events in append order."""
        rows = self.db.execute(
            "SELECT * FROM incident_timeline WHERE incident_id = ? ORDER BY seq ASC",
            (incident_id,),
        )
        return [
            TimelineEvent(
                event_id=row["id"],
                incident_id=row["incident_id"],
                event=row["event"],
                details=self._deserialize_json(row["details"], {}),
                timestamp=self._parse_datetime(row["timestamp"]),
            )
            for row in rows
        ]

    def delete_by_incident(self, incident_id: str) -> bool:
        """Delete every event of an incident."""
        return (
            self.db.execute_write(
                "DELETE FROM incident_timeline WHERE incident_id = ?",
                (incident_id,),
            )
            > 0
        )


class AlertRepository(BaseRepository):
    """Repository for alerts and webhook subscriptions."""

    def add_alert(self, alert: Alert) -> Alert:
        """Record an alert."""
        self.db.execute_write(
            """
            INSERT INTO alerts (id, incident_id, alert_type, triggered_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                alert.alert_id,
                alert.incident_id,
                alert.alert_type.value,
                self._format_datetime(alert.triggered_at),
            ),
        )
        return alert

    def list_alerts(self, incident_id: str) -> list[Alert]:
        """Get an incident's alerts, oldest first."""
        rows = self.db.execute(
            "SELECT * FROM alerts WHERE incident_id = ? ORDER BY seq ASC",
            (incident_id,),
        )
        return [
            Alert(
                alert_id=row["id"],
                incident_id=row["incident_id"],
                alert_type=AlertType(row["alert_type"]),
                triggered_at=self._parse_datetime(row["triggered_at"]),
            )
            for row in rows
        ]

    def delete_alerts(self, incident_id: str) -> bool:
        return (
            self.db.execute_write(
                "DELETE FROM alerts WHERE incident_id = ?", (incident_id,)
            )
            > 0
        )

    def add_webhook(self, incident_id: str, url: str) -> None:
        """Subscribe a URL to an incident; registering twice is a no-op."""
        self.db.execute_write(
            """
            INSERT OR IGNORE INTO webhook_subscriptions (incident_id, url, created_at)
            VALUES (?, ?, ?)
            """,
            (incident_id, url, self._format_datetime(utc_now())),
        )

    def list_webhooks(self, incident_id: str) -> list[str]:
        rows = self.db.execute(
            "SELECT url FROM webhook_subscriptions WHERE incident_id = ? ORDER BY seq ASC",
            (incident_id,),
        )
        return [row["url"] for row in rows]

    def delete_webhooks(self, incident_id: str) -> bool:
        return (
            self.db.execute_write(
                "DELETE FROM webhook_subscriptions WHERE incident_id = ?",
                (incident_id,),
            )
            > 0
        )
