"""
Incident tracking for BreachWatch.

This module provides the incident lifecycle state machine, the timeline
ledger, duplicate report detection, input validation, and webhook alerts,
all coordinated by the IncidentManager.
"""

from breachwatch.incidents.models import (
    Alert,
    AlertType,
    DuplicationResult,
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TimelineEvent,
    TimelineEventKind,
    parse_severity,
    parse_status,
)
from breachwatch.incidents.similarity import levenshtein_distance, similarity
from breachwatch.incidents.deduplication import (
    CROSS_SOURCE_THRESHOLD,
    SAME_SOURCE_THRESHOLD,
    DeduplicationEngine,
    DeduplicationSettings,
)
from breachwatch.incidents.timeline import TimelineLedger
from breachwatch.incidents.lifecycle import (
    VALID_TRANSITIONS,
    LifecycleStateMachine,
    allowed_transitions,
    is_valid_transition,
)
from breachwatch.incidents.manager import (
    IncidentCallback,
    IncidentEvent,
    IncidentEventType,
    IncidentManager,
)
from breachwatch.incidents.validator import (
    IncidentValidator,
    SourceValidator,
    ValidationMessage,
    ValidationResult,
    ValidationSeverity,
)
from breachwatch.incidents.alerts import AlertService

__all__ = [
    # Models
    "Alert",
    "AlertType",
    "DuplicationResult",
    "Incident",
    "IncidentSeverity",
    "IncidentStatus",
    "TimelineEvent",
    "TimelineEventKind",
    "parse_severity",
    "parse_status",
    # Similarity
    "levenshtein_distance",
    "similarity",
    # Deduplication
    "CROSS_SOURCE_THRESHOLD",
    "SAME_SOURCE_THRESHOLD",
    "DeduplicationEngine",
    "DeduplicationSettings",
    # Timeline
    "TimelineLedger",
    # Lifecycle
    "VALID_TRANSITIONS",
    "LifecycleStateMachine",
    "allowed_transitions",
    "is_valid_transition",
    # Manager
    "IncidentCallback",
    "IncidentEvent",
    "IncidentEventType",
    "IncidentManager",
    # Validation
    "IncidentValidator",
    "SourceValidator",
    "ValidationMessage",
    "ValidationResult",
    "ValidationSeverity",
    # Alerts
    "AlertService",
]
