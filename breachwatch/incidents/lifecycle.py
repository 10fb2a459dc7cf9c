"""
Incident lifecycle state machine for BreachWatch.

An incident starts in REPORTED and moves only along the edges of
VALID_TRANSITIONS. There is no terminal state: DISPUTED reopens an
investigation by going back to REPORTED or CONFIRMED.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from breachwatch.exceptions import IncidentNotFoundError, InvalidTransitionError
from breachwatch.incidents.models import (
    Incident,
    IncidentStatus,
    TimelineEventKind,
    parse_status,
)
from breachwatch.incidents.timeline import TimelineLedger
from breachwatch.models.base import utc_now
from breachwatch.storage.interfaces import IncidentStore

logger = logging.getLogger("breachwatch.incidents.lifecycle")


VALID_TRANSITIONS: dict[IncidentStatus, frozenset[IncidentStatus]] = {
    IncidentStatus.REPORTED: frozenset(
        {IncidentStatus.CONFIRMED, IncidentStatus.DISPUTED}
    ),
    IncidentStatus.CONFIRMED: frozenset(
        {IncidentStatus.ONGOING, IncidentStatus.DISPUTED}
    ),
    IncidentStatus.ONGOING: frozenset(
        {IncidentStatus.MITIGATED, IncidentStatus.DISPUTED}
    ),
    IncidentStatus.MITIGATED: frozenset(
        {IncidentStatus.RESOLVED, IncidentStatus.DISPUTED}
    ),
    IncidentStatus.RESOLVED: frozenset({IncidentStatus.DISPUTED}),
    IncidentStatus.DISPUTED: frozenset(
        {IncidentStatus.REPORTED, IncidentStatus.CONFIRMED}
    ),
}


def allowed_transitions(current: IncidentStatus) -> frozenset[IncidentStatus]:
    """Return the statuses reachable in one step from ``current``."""
    return VALID_TRANSITIONS.get(current, frozenset())


def is_valid_transition(current: IncidentStatus, new: IncidentStatus) -> bool:
    """Check whether ``current -> new`` is an approved transition."""
    return new in allowed_transitions(current)


class LifecycleStateMachine:
    """
    Validates and applies status transitions.

    Each transition is a read-validate-write-append sequence executed under a
    lock owned by the incident, so two concurrent requests for the same
    incident never both validate against the same stale status. Different
    incidents use different locks and proceed in parallel.

    A failed transition leaves both the incident and its timeline untouched.
    If the timeline append fails after the status was written, the status
    write is reverted before the error propagates.
    """

    def __init__(self, store: IncidentStore, ledger: TimelineLedger) -> None:
        """
        Initialize the state machine.

        Args:
            store: Storage holding the incidents.
            ledger: Timeline ledger receiving status_changed events.
        """
        self._store = store
        self._ledger = ledger
        # incident_id -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def lock_for(self, incident_id: str) -> Iterator[None]:
        """
        Hold the incident's transition lock for the duration of the block.

        Used by operations that must not interleave with a transition, such
        as deleting the incident. The lock entry is dropped once no caller
        holds or waits on it, so unknown ids leave nothing behind.
        """
        with self._locks_guard:
            entry = self._locks.get(incident_id)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[incident_id] = entry
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[incident_id]

    def apply_transition(
        self,
        incident_id: str,
        new_status: IncidentStatus | str,
    ) -> tuple[Incident, IncidentStatus]:
        """
        Move an incident to a new status.

        Args:
            incident_id: The incident to transition.
            new_status: Target status, as an enum member or its string value.

        Returns:
            Tuple of the updated Incident and the status it left.

        Raises:
            ValidationError: If new_status is not a known status.
            IncidentNotFoundError: If the incident does not exist.
            InvalidTransitionError: If new_status is not reachable from the
                incident's current status.
        """
        target = parse_status(new_status)

        with self.lock_for(incident_id):
            incident = self._store.get_by_id(incident_id)
            if incident is None:
                raise IncidentNotFoundError(incident_id)

            current = incident.status
            if not is_valid_transition(current, target):
                raise InvalidTransitionError(
                    incident_id, current.value, target.value
                )

            now = max(utc_now(), incident.discovery_date)
            updated = self._store.update(
                incident_id, status=target, last_updated=now
            )
            if updated is None:
                raise IncidentNotFoundError(incident_id)

            try:
                self._ledger.append(
                    incident_id,
                    TimelineEventKind.STATUS_CHANGED.value,
                    {"old_status": current.value, "new_status": target.value},
                )
            except Exception:
                logger.error(
                    f"Timeline append failed for {incident_id}; "
                    f"reverting status to {current.value}"
                )
                self._store.update(
                    incident_id,
                    status=current,
                    last_updated=incident.last_updated,
                )
                raise

            return updated, current
