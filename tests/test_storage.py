"""
Tests for the storage layer.

Repository behaviour is checked against both the SQLite and the in-memory
backends through the parametrized ``stores`` fixture.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from breachwatch.config.schema import DatabaseConfig
from breachwatch.exceptions import StorageError
from breachwatch.incidents.models import (
    Alert,
    AlertType,
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TimelineEvent,
)
from breachwatch.storage import (
    Database,
    IncidentRepository,
    InMemoryIncidentRepository,
    Stores,
    create_stores,
)
from breachwatch.storage.schema import SCHEMA_VERSION, TABLES

DISCOVERED = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def _incident(title: str = "Ransomware hits regional hospital", **kwargs) -> Incident:
    defaults = {
        "title": title,
        "description": "Systems encrypted, intake diverted",
        "severity": IncidentSeverity.HIGH,
        "discovery_date": DISCOVERED,
        "last_updated": DISCOVERED + timedelta(hours=1),
        "source_ids": ("cnn_feed",),
        "classifications": ("ransomware", "healthcare"),
    }
    defaults.update(kwargs)
    return Incident(**defaults)


# =============================================================================
# Database
# =============================================================================


class TestDatabase:
    """Tests for the SQLite connection manager."""

    def test_initialize_creates_tables(self, temp_db: Database) -> None:
        rows = temp_db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {row["name"] for row in rows}
        assert set(TABLES) <= names

    def test_schema_version(self, temp_db: Database) -> None:
        assert temp_db.get_schema_version() == SCHEMA_VERSION

    def test_initialize_twice(self, temp_db: Database) -> None:
        temp_db.initialize()
        assert temp_db.get_schema_version() == SCHEMA_VERSION

    def test_health_check(self, temp_db: Database) -> None:
        assert temp_db.health_check() is True

    def test_memory_flag(self, temp_db: Database, file_db: Database) -> None:
        assert temp_db.is_memory is True
        assert file_db.is_memory is False

    def test_file_database_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "incidents.db"
        incident = _incident()

        with Database(path) as db:
            db.initialize()
            IncidentRepository(db).create(incident)

        with Database(path) as db:
            db.initialize()
            assert IncidentRepository(db).get_by_id(incident.incident_id) == incident

    def test_transaction_rolls_back(self, temp_db: Database) -> None:
        with pytest.raises(RuntimeError):
            with temp_db.transaction() as conn:
                conn.execute(
                    "INSERT INTO schema_version (version, description) VALUES (99, 'x')"
                )
                raise RuntimeError("abort")

        assert temp_db.get_schema_version() == SCHEMA_VERSION

    def test_bad_query_raises_storage_error(self, temp_db: Database) -> None:
        with pytest.raises(StorageError):
            temp_db.execute("SELECT * FROM no_such_table")


# =============================================================================
# Incidents
# =============================================================================


class TestIncidentStore:
    """Tests for incident repositories on both backends."""

    def test_create_and_get(self, stores: Stores) -> None:
        incident = _incident()
        stores.incidents.create(incident)

        loaded = stores.incidents.get_by_id(incident.incident_id)

        assert loaded is not None
        assert loaded.to_dict() == incident.to_dict()

    def test_get_missing(self, stores: Stores) -> None:
        assert stores.incidents.get_by_id("missing") is None

    def test_duplicate_id_rejected(self, stores: Stores) -> None:
        incident = _incident()
        stores.incidents.create(incident)
        with pytest.raises(StorageError):
            stores.incidents.create(incident)

    def test_list_in_creation_order(self, stores: Stores) -> None:
        created = [stores.incidents.create(_incident(f"Incident {i}")) for i in range(4)]
        assert [i.incident_id for i in stores.incidents.list_all()] == [
            i.incident_id for i in created
        ]

    def test_list_filters(self, stores: Stores) -> None:
        low = stores.incidents.create(_incident("Low one", severity=IncidentSeverity.LOW))
        stores.incidents.create(_incident("High one"))
        disputed = stores.incidents.create(_incident("Disputed", status=IncidentStatus.DISPUTED))

        assert [i.incident_id for i in stores.incidents.list_all(severity="low")] == [
            low.incident_id
        ]
        assert [i.incident_id for i in stores.incidents.list_all(status="disputed")] == [
            disputed.incident_id
        ]

    def test_list_limit_offset(self, stores: Stores) -> None:
        created = [stores.incidents.create(_incident(f"Incident {i}")) for i in range(5)]

        page = stores.incidents.list_all(limit=2, offset=2)

        assert [i.incident_id for i in page] == [i.incident_id for i in created[2:4]]

    def test_update_fields(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())
        later = DISCOVERED + timedelta(days=1)

        updated = stores.incidents.update(
            incident.incident_id,
            status=IncidentStatus.CONFIRMED,
            last_updated=later,
            source_ids=("cnn_feed", "blog1"),
        )

        assert updated.status == IncidentStatus.CONFIRMED
        assert updated.last_updated == later
        assert updated.source_ids == ("cnn_feed", "blog1")
        assert stores.incidents.get_by_id(incident.incident_id).status == IncidentStatus.CONFIRMED

    def test_update_missing(self, stores: Stores) -> None:
        assert stores.incidents.update("missing", status=IncidentStatus.CONFIRMED) is None

    def test_update_unknown_field(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())
        with pytest.raises(StorageError):
            stores.incidents.update(incident.incident_id, incident_id="other")
        with pytest.raises(StorageError):
            stores.incidents.update(incident.incident_id, created_at=DISCOVERED)

        assert stores.incidents.get_by_id(incident.incident_id).incident_id == incident.incident_id

    def test_delete(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())

        assert stores.incidents.delete(incident.incident_id) is True
        assert stores.incidents.delete(incident.incident_id) is False
        assert stores.incidents.get_by_id(incident.incident_id) is None

    def test_memory_store_keeps_immutable_records(self) -> None:
        store = InMemoryIncidentRepository()
        incident = store.create(_incident())

        store.update(incident.incident_id, status="confirmed")

        assert incident.status == IncidentStatus.REPORTED
        assert store.get_by_id(incident.incident_id) == replace(
            incident, status=IncidentStatus.CONFIRMED
        )


# =============================================================================
# Timeline and Alerts
# =============================================================================


class TestTimelineStore:
    """Tests for timeline repositories on both backends."""

    def test_append_order_and_details(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())
        events = [
            TimelineEvent(
                incident_id=incident.incident_id,
                event="note",
                details={"n": i, "nested": {"ok": True}},
            )
            for i in range(3)
        ]
        for event in events:
            stores.timeline.append(event)

        loaded = stores.timeline.list_by_incident(incident.incident_id)

        assert [e.event_id for e in loaded] == [e.event_id for e in events]
        assert loaded[2].details == {"n": 2, "nested": {"ok": True}}

    def test_delete_by_incident(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())
        stores.timeline.append(TimelineEvent(incident_id=incident.incident_id, event="created"))

        assert stores.timeline.delete_by_incident(incident.incident_id) is True
        assert stores.timeline.list_by_incident(incident.incident_id) == []
        assert stores.timeline.delete_by_incident(incident.incident_id) is False


class TestAlertStore:
    """Tests for alert repositories on both backends."""

    def test_alerts_round_trip(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())
        alert = Alert(incident_id=incident.incident_id, alert_type=AlertType.STATUS_CHANGE)

        stores.alerts.add_alert(alert)

        assert [a.alert_id for a in stores.alerts.list_alerts(incident.incident_id)] == [
            alert.alert_id
        ]
        assert stores.alerts.delete_alerts(incident.incident_id) is True
        assert stores.alerts.list_alerts(incident.incident_id) == []

    def test_webhooks_deduplicated(self, stores: Stores) -> None:
        incident = stores.incidents.create(_incident())

        stores.alerts.add_webhook(incident.incident_id, "https://hooks.example.com/a")
        stores.alerts.add_webhook(incident.incident_id, "https://hooks.example.com/a")
        stores.alerts.add_webhook(incident.incident_id, "https://hooks.example.com/b")

        assert stores.alerts.list_webhooks(incident.incident_id) == [
            "https://hooks.example.com/a",
            "https://hooks.example.com/b",
        ]
        assert stores.alerts.delete_webhooks(incident.incident_id) is True
        assert stores.alerts.list_webhooks(incident.incident_id) == []


class TestSqliteCascade:
    """Tests for foreign key cascades in the SQLite schema."""

    def test_deleting_incident_cascades(self, sqlite_stores: Stores) -> None:
        incident = sqlite_stores.incidents.create(_incident())
        incident_id = incident.incident_id
        sqlite_stores.timeline.append(TimelineEvent(incident_id=incident_id, event="created"))
        sqlite_stores.alerts.add_alert(Alert(incident_id=incident_id))
        sqlite_stores.alerts.add_webhook(incident_id, "https://hooks.example.com/a")

        sqlite_stores.incidents.delete(incident_id)

        assert sqlite_stores.timeline.list_by_incident(incident_id) == []
        assert sqlite_stores.alerts.list_alerts(incident_id) == []
        assert sqlite_stores.alerts.list_webhooks(incident_id) == []

    def test_timeline_requires_incident(self, sqlite_stores: Stores) -> None:
        with pytest.raises(StorageError):
            sqlite_stores.timeline.append(TimelineEvent(incident_id="missing", event="note"))


# =============================================================================
# Factory
# =============================================================================


class TestCreateStores:
    """Tests for the backend factory."""

    def test_memory_backend(self) -> None:
        stores = create_stores(DatabaseConfig(backend="memory"))

        assert isinstance(stores.incidents, InMemoryIncidentRepository)
        assert stores.database is None
        assert stores.health_check() is True

    def test_sqlite_backend(self, tmp_path: Path) -> None:
        stores = create_stores(DatabaseConfig(path=str(tmp_path / "bw.db")))
        try:
            assert isinstance(stores.incidents, IncidentRepository)
            assert stores.database is not None
            assert stores.database.initialized is True
            assert stores.health_check() is True
        finally:
            stores.close()
