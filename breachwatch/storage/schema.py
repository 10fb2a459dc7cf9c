"""
Database schema definitions for BreachWatch.

This module defines the SQLite schema as SQL strings: incidents, their
timeline, alerts, and webhook subscriptions.
"""

# Current schema version - increment when making schema changes
SCHEMA_VERSION = 1

SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now')),
    description TEXT
);
"""

# Incidents - seq gives a stable creation order for listing and dedup scans
INCIDENTS_SQL = """
CREATE TABLE IF NOT EXISTS incidents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    severity TEXT NOT NULL
        CHECK (severity IN ('critical', 'high', 'medium', 'low')),
    status TEXT NOT NULL DEFAULT 'reported'
        CHECK (status IN ('reported', 'confirmed', 'ongoing',
                          'mitigated', 'resolved', 'disputed')),
    discovery_date TEXT NOT NULL,
    last_updated TEXT NOT NULL,
    source_ids TEXT NOT NULL DEFAULT '[]',  -- JSON array
    classifications TEXT NOT NULL DEFAULT '[]'  -- JSON array
);

CREATE INDEX IF NOT EXISTS idx_incidents_status ON incidents(status);
CREATE INDEX IF NOT EXISTS idx_incidents_severity ON incidents(severity);
"""

# Timeline - append-only; seq is the append order
INCIDENT_TIMELINE_SQL = """
CREATE TABLE IF NOT EXISTS incident_timeline (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    incident_id TEXT NOT NULL REFERENCES incidents(id) ON DELETE CASCADE,
    event TEXT NOT NULL,
    details TEXT NOT NULL DEFAULT '{}',  -- JSON object
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_timeline_incident_id ON incident_timeline(incident_id, seq);
"""

ALERTS_SQL = """
CREATE TABLE IF NOT EXISTS alerts (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    incident_id TEXT NOT NULL REFERENCES incidents(id) ON DELETE CASCADE,
    alert_type TEXT NOT NULL
        CHECK (alert_type IN ('NEW_INCIDENT', 'STATUS_CHANGE')),
    triggered_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_alerts_incident_id ON alerts(incident_id, seq);
"""

WEBHOOK_SUBSCRIPTIONS_SQL = """
CREATE TABLE IF NOT EXISTS webhook_subscriptions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    incident_id TEXT NOT NULL REFERENCES incidents(id) ON DELETE CASCADE,
    url TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (incident_id, url)
);
"""

SCHEMA_SQL = f"""
-- BreachWatch Database Schema v{SCHEMA_VERSION}

{SCHEMA_VERSION_SQL}

{INCIDENTS_SQL}

{INCIDENT_TIMELINE_SQL}

{ALERTS_SQL}

{WEBHOOK_SUBSCRIPTIONS_SQL}

INSERT OR IGNORE INTO schema_version (version, description)
VALUES ({SCHEMA_VERSION}, 'Initial schema');
"""

# List of all tables for reference
TABLES = [
    "schema_version",
    "incidents",
    "incident_timeline",
    "alerts",
    "webhook_subscriptions",
]
