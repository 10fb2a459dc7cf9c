"""
Pytest configuration and shared fixtures for BreachWatch tests.

This module provides:
- Storage fixtures (in-memory repositories, SQLite database)
- Component fixtures (incident manager, alert service)
- Configuration fixtures
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from breachwatch.config.defaults import get_test_config
from breachwatch.config.schema import BreachWatchConfig
from breachwatch.incidents.alerts import AlertService
from breachwatch.incidents.manager import IncidentManager
from breachwatch.storage import (
    AlertRepository,
    Database,
    IncidentRepository,
    InMemoryAlertRepository,
    InMemoryIncidentRepository,
    InMemoryTimelineRepository,
    Stores,
    TimelineRepository,
)


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def memory_stores() -> Stores:
    """Create a fresh set of in-memory stores."""
    return Stores(
        incidents=InMemoryIncidentRepository(),
        timeline=InMemoryTimelineRepository(),
        alerts=InMemoryAlertRepository(),
    )


@pytest.fixture
def temp_db() -> Generator[Database, None, None]:
    """Create an initialized in-memory SQLite database.

    Yields:
        Initialized Database instance.
    """
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def file_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create an initialized SQLite database file under tmp_path."""
    db = Database(tmp_path / "breachwatch.db", pool_size=2)
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def sqlite_stores(temp_db: Database) -> Stores:
    """Create SQLite-backed stores over the temporary database."""
    return Stores(
        incidents=IncidentRepository(temp_db),
        timeline=TimelineRepository(temp_db),
        alerts=AlertRepository(temp_db),
        database=temp_db,
    )


@pytest.fixture(params=["memory", "sqlite"])
def stores(request: pytest.FixtureRequest) -> Stores:
    """Run a test once against each storage backend."""
    return request.getfixturevalue(f"{request.param}_stores")


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def manager(memory_stores: Stores) -> IncidentManager:
    """Create an incident manager over in-memory stores."""
    return IncidentManager(memory_stores.incidents, memory_stores.timeline)


@pytest.fixture
def alert_service(memory_stores: Stores) -> AlertService:
    """Create an alert service that delivers inline without backoff."""
    return AlertService(
        memory_stores.alerts,
        timeout_seconds=1.0,
        retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def make_incident(manager: IncidentManager):
    """Factory creating incidents with sensible defaults."""

    def _make(
        title: str = "Ransomware hits regional hospital",
        severity: str = "high",
        sources: list[str] | None = None,
        **kwargs,
    ):
        return manager.create_incident(
            title=title,
            description=kwargs.pop("description", "Systems encrypted, intake diverted"),
            severity=severity,
            source_ids=sources if sources is not None else ["cnn_feed"],
            **kwargs,
        )

    return _make


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> BreachWatchConfig:
    """Create the test profile configuration (memory storage, no retries)."""
    return get_test_config()
