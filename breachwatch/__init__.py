"""
BreachWatch: cybersecurity incident tracking with duplicate detection.

BreachWatch tracks security incidents reported by news feeds, blogs, and
analysts through a fixed lifecycle, keeps an append-only timeline of every
change, and filters out duplicate reports arriving from multiple sources.

Key Features:
    - Lifecycle state machine: reported, confirmed, ongoing, mitigated,
      resolved, disputed
    - Timeline ledger: immutable audit trail per incident
    - Deduplication: title similarity with source-aware thresholds
    - Pluggable storage: SQLite or in-memory repositories
    - Alerts: webhook notifications on new incidents and status changes

Example:
    Basic usage of BreachWatch::

        from breachwatch.incidents import IncidentManager, IncidentSeverity
        from breachwatch.storage import InMemoryIncidentRepository, InMemoryTimelineRepository

        manager = IncidentManager(
            InMemoryIncidentRepository(),
            InMemoryTimelineRepository(),
        )
        incident = manager.create_incident(
            title="Ransomware hits regional hospital",
            description="Systems encrypted, patient intake diverted",
            severity=IncidentSeverity.CRITICAL,
            source_ids=["cnn_feed"],
        )
        manager.apply_transition(incident.incident_id, "confirmed")

Public API:
    Version:
        __version__: The package version string

    Exceptions:
        BreachWatchError: Base exception for all BreachWatch errors
        ConfigurationError: Configuration-related errors
        ValidationError: Input validation errors
        StorageError: Storage layer errors
        IncidentError: Incident management errors
        IncidentNotFoundError: Referenced incident does not exist
        InvalidTransitionError: Status change not allowed from current status
        AlertError: Alert delivery errors
"""

from breachwatch.exceptions import (
    AlertError,
    BreachWatchError,
    ConfigurationError,
    IncidentError,
    IncidentNotFoundError,
    InvalidTransitionError,
    StorageError,
    ValidationError,
)
from breachwatch.version import __version__

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "BreachWatchError",
    "ConfigurationError",
    "ValidationError",
    "StorageError",
    "IncidentError",
    "IncidentNotFoundError",
    "InvalidTransitionError",
    "AlertError",
]
