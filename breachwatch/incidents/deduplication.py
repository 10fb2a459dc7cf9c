"""
Duplicate report detection for BreachWatch.

A report restates a known incident when its title is close enough to that
incident's title. Reports from a source that already reported the incident
need a lower bar than reports from an independent source.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from breachwatch.incidents.models import DuplicationResult, Incident
from breachwatch.incidents.similarity import similarity

logger = logging.getLogger("breachwatch.incidents.deduplication")

# Minimum similarity (exclusive) for a repeat report from the same source.
SAME_SOURCE_THRESHOLD = 0.70

# Minimum similarity (exclusive) for a report from a different source.
CROSS_SOURCE_THRESHOLD = 0.85


@dataclass(frozen=True)
class DeduplicationSettings:
    """
    Thresholds used by the DeduplicationEngine.

    Attributes:
        enabled: When False every report is treated as new.
        same_source_threshold: Similarity a same-source report must exceed.
        cross_source_threshold: Similarity any other report must exceed.
    """

    enabled: bool = True
    same_source_threshold: float = SAME_SOURCE_THRESHOLD
    cross_source_threshold: float = CROSS_SOURCE_THRESHOLD

    def __post_init__(self) -> None:
        """Validate threshold ranges."""
        for name in ("same_source_threshold", "cross_source_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")


class DeduplicationEngine:
    """
    Classifies an incoming (title, source) pair as duplicate or new.

    Existing incidents are scanned in the order given and the first one
    satisfying either rule wins; callers must not assume the best match is
    returned. The scan never mutates anything.

    Example:
        Checking a report::

            engine = DeduplicationEngine()
            result = engine.check_duplicate(
                "Critical Security Breach", "cnn_feed", existing_incidents
            )
            if not result.is_duplicate:
                manager.create_incident(...)
    """

    def __init__(self, settings: DeduplicationSettings | None = None) -> None:
        self._settings = settings or DeduplicationSettings()

    @property
    def settings(self) -> DeduplicationSettings:
        """Get the active thresholds."""
        return self._settings

    def check_duplicate(
        self,
        title: str,
        source: str,
        existing: Iterable[Incident],
    ) -> DuplicationResult:
        """
        Check a candidate report against existing incidents.

        Args:
            title: Title of the incoming report.
            source: Identifier of the source that produced it.
            existing: Known incidents, scanned in iteration order.

        Returns:
            DuplicationResult naming the first matching incident, or a
            non-duplicate result with similarity 0.0.
        """
        if not self._settings.enabled:
            return DuplicationResult()

        for incident in existing:
            score = similarity(title, incident.title)

            if incident.has_source(source) and score > self._settings.same_source_threshold:
                logger.debug(
                    f"Same-source duplicate of {incident.incident_id} "
                    f"(source={source}, similarity={score:.3f})"
                )
                return DuplicationResult(
                    is_duplicate=True,
                    matched_incident_id=incident.incident_id,
                    similarity=score,
                )

            if score > self._settings.cross_source_threshold:
                logger.debug(
                    f"Cross-source duplicate of {incident.incident_id} "
                    f"(source={source}, similarity={score:.3f})"
                )
                return DuplicationResult(
                    is_duplicate=True,
                    matched_incident_id=incident.incident_id,
                    similarity=score,
                )

        return DuplicationResult()
