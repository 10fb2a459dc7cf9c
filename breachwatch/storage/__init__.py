"""
Storage layer for BreachWatch.

This module provides the storage protocols consumed by the incident core,
SQLite-backed repositories, in-memory repositories, and a factory that
builds whichever backend the configuration selects.
"""

from dataclasses import dataclass

from breachwatch.config.schema import DatabaseConfig, StorageBackend
from breachwatch.storage.database import Database
from breachwatch.storage.interfaces import AlertStore, IncidentStore, TimelineStore
from breachwatch.storage.memory import (
    InMemoryAlertRepository,
    InMemoryIncidentRepository,
    InMemoryTimelineRepository,
)
from breachwatch.storage.repositories import (
    AlertRepository,
    BaseRepository,
    IncidentRepository,
    TimelineRepository,
)


@dataclass
class Stores:
    """
    The set of stores an application runs against.

    Attributes:
        incidents: Incident records.
        timeline: Timeline events.
        alerts: Alerts and webhook subscriptions.
        database: The SQLite database behind the stores, if any.
    """

    incidents: IncidentStore
    timeline: TimelineStore
    alerts: AlertStore
    database: Database | None = None

    def health_check(self) -> bool:
        """Check that the backing storage is reachable."""
        return self.database.health_check() if self.database else True

    def close(self) -> None:
        if self.database is not None:
            self.database.close()


def create_stores(config: DatabaseConfig) -> Stores:
    """
    Build the stores selected by the database configuration.

    Args:
        config: Database configuration section.

    Returns:
        Stores for the configured backend. SQLite databases are
        initialized before being returned.

    Raises:
        StorageError: If the SQLite database cannot be initialized.
    """
    if StorageBackend(config.backend.lower()) == StorageBackend.MEMORY:
        return Stores(
            incidents=InMemoryIncidentRepository(),
            timeline=InMemoryTimelineRepository(),
            alerts=InMemoryAlertRepository(),
        )

    db = Database(
        path=config.path,
        pool_size=config.pool_size,
        timeout=config.timeout_seconds,
    )
    db.initialize()
    return Stores(
        incidents=IncidentRepository(db),
        timeline=TimelineRepository(db),
        alerts=AlertRepository(db),
        database=db,
    )


__all__ = [
    "Database",
    "Stores",
    "create_stores",
    # Protocols
    "IncidentStore",
    "TimelineStore",
    "AlertStore",
    # SQLite
    "BaseRepository",
    "IncidentRepository",
    "TimelineRepository",
    "AlertRepository",
    # In-memory
    "InMemoryIncidentRepository",
    "InMemoryTimelineRepository",
    "InMemoryAlertRepository",
]
