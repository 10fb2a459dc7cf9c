"""
Incident data models for BreachWatch.

This module defines the data structures used for incident tracking:
incidents, their timeline events, duplicate-check results, and alerts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from breachwatch.exceptions import ValidationError
from breachwatch.models.base import generate_uuid, model_to_dict, model_to_json, utc_now


class IncidentSeverity(Enum):
    """
    Severity levels for incidents.

    Severity determines how urgently an incident is surfaced to analysts.
    """

    CRITICAL = "critical"
    """
    Active, wide-impact attack.
    Examples: Ransomware on critical infrastructure, mass credential dump.
    """

    HIGH = "high"
    """
    Confirmed compromise with significant impact.
    Examples: Data breach affecting customer records.
    """

    MEDIUM = "medium"
    """
    Limited or unconfirmed impact.
    Examples: Phishing campaign, exploited vulnerability in a niche product.
    """

    LOW = "low"
    """
    Minor event with little direct impact.
    Examples: Defacement, disclosed but unexploited vulnerability.
    """


class IncidentStatus(Enum):
    """
    Status values for the incident lifecycle.

    The allowed moves between these states live in
    breachwatch.incidents.lifecycle.
    """

    REPORTED = "reported"
    """Incident has been reported and awaits confirmation."""

    CONFIRMED = "confirmed"
    """Incident has been confirmed by a trusted source."""

    ONGOING = "ongoing"
    """Attack or its effects are still in progress."""

    MITIGATED = "mitigated"
    """Impact has been contained but not fully resolved."""

    RESOLVED = "resolved"
    """Incident is resolved."""

    DISPUTED = "disputed"
    """Facts are contested; investigation is reopened from here."""


class TimelineEventKind(Enum):
    """
    Well-known timeline event kinds.

    Timeline events store their kind as free text, so callers may record
    other kinds; these are the ones BreachWatch itself writes.
    """

    CREATED = "created"
    """Incident was created."""

    STATUS_CHANGED = "status_changed"
    """Incident status changed."""

    SOURCE_ADDED = "source_added"
    """Another source reported an incident already being tracked."""

    NOTE = "note"
    """Manual annotation added by an analyst."""


class AlertType(Enum):
    """Types of alerts raised for an incident."""

    NEW_INCIDENT = "NEW_INCIDENT"
    """A new incident was created."""

    STATUS_CHANGE = "STATUS_CHANGE"
    """An incident changed status."""


@dataclass(frozen=True)
class Incident:
    """
    Represents a tracked cybersecurity incident.

    This class is immutable (frozen). Updates go through the incident store
    and produce new records.

    Attributes:
        incident_id: Unique identifier for the incident.
        title: Short headline describing the incident.
        description: Detailed description of what occurred.
        severity: Severity level of the incident.
        status: Current status in the incident lifecycle.
        discovery_date: When the incident was discovered.
        last_updated: When the incident was last modified. Never earlier
            than discovery_date.
        source_ids: Identifiers of the sources that reported the incident.
        classifications: Classification tags (e.g. "ransomware").
    """

    incident_id: str = field(default_factory=generate_uuid)
    title: str = ""
    description: str = ""
    severity: IncidentSeverity = IncidentSeverity.MEDIUM
    status: IncidentStatus = IncidentStatus.REPORTED
    discovery_date: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)
    source_ids: tuple[str, ...] = field(default_factory=tuple)
    classifications: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the incident to a dictionary."""
        return model_to_dict(self, exclude_none)

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the incident to a JSON string."""
        return model_to_json(self, indent, exclude_none)

    def __hash__(self) -> int:
        """Return hash based on the incident's id."""
        return hash(self.incident_id)

    def __eq__(self, other: object) -> bool:
        """Check equality based on incident id."""
        if not isinstance(other, Incident):
            return NotImplemented
        return self.incident_id == other.incident_id

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (
            f"Incident(id={self.incident_id!r}, title={self.title!r}, "
            f"severity={self.severity.value}, status={self.status.value})"
        )

    def is_active(self) -> bool:
        """Check if the incident is still unfolding (not mitigated or resolved)."""
        return self.status in (
            IncidentStatus.REPORTED,
            IncidentStatus.CONFIRMED,
            IncidentStatus.ONGOING,
        )

    def is_high_priority(self) -> bool:
        """Check if the incident is high priority (HIGH or CRITICAL severity)."""
        return self.severity in (IncidentSeverity.HIGH, IncidentSeverity.CRITICAL)

    def has_source(self, source_id: str) -> bool:
        """Check if the incident was reported by the given source."""
        return source_id in self.source_ids


@dataclass(frozen=True)
class TimelineEvent:
    """
    An immutable entry in an incident's timeline.

    Attributes:
        event_id: Unique identifier for the event.
        incident_id: ID of the incident this event belongs to.
        event: Event kind, e.g. "created" or "status_changed".
        details: Event-specific payload.
        timestamp: When the event was appended.
    """

    event_id: str = field(default_factory=generate_uuid)
    incident_id: str = ""
    event: str = TimelineEventKind.CREATED.value
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the timeline event to a dictionary."""
        return model_to_dict(self, exclude_none)

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the timeline event to a JSON string."""
        return model_to_json(self, indent, exclude_none)

    def __repr__(self) -> str:
        return f"TimelineEvent(id={self.event_id!r}, event={self.event!r})"


@dataclass(frozen=True)
class DuplicationResult:
    """
    Outcome of checking a candidate report against known incidents.

    Attributes:
        is_duplicate: Whether the candidate restates a known incident.
        matched_incident_id: ID of the matched incident, if any.
        similarity: Title similarity with the matched incident, or 0.0
            when no match was found.
    """

    is_duplicate: bool = False
    matched_incident_id: str | None = None
    similarity: float = 0.0

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the result to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class Alert:
    """
    A recorded alert for an incident.

    Attributes:
        alert_id: Unique identifier for the alert.
        incident_id: ID of the incident the alert is about.
        alert_type: What triggered the alert.
        triggered_at: When the alert was raised.
    """

    alert_id: str = field(default_factory=generate_uuid)
    incident_id: str = ""
    alert_type: AlertType = AlertType.NEW_INCIDENT
    triggered_at: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the alert to a dictionary."""
        return model_to_dict(self, exclude_none)


def parse_severity(value: "IncidentSeverity | str") -> IncidentSeverity:
    """
    Coerce a severity value, accepting any letter case.

    Raises:
        ValidationError: If the value is not a known severity.
    """
    if isinstance(value, IncidentSeverity):
        return value
    try:
        return IncidentSeverity(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown severity: {value!r}",
            {
                "field": "severity",
                "value": value,
                "allowed": [s.value for s in IncidentSeverity],
            },
        ) from None


def parse_status(value: "IncidentStatus | str") -> IncidentStatus:
    """
    Coerce a status value, accepting any letter case.

    Raises:
        ValidationError: If the value is not a known status.
    """
    if isinstance(value, IncidentStatus):
        return value
    try:
        return IncidentStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown status: {value!r}",
            {
                "field": "status",
                "value": value,
                "allowed": [s.value for s in IncidentStatus],
            },
        ) from None
