"""
Incident handlers for the BreachWatch server.

Handlers translate HTTP requests into IncidentManager calls. BreachWatch
exceptions are left to the error handler middleware, which maps them to
status codes.
"""

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiohttp import web

from breachwatch.exceptions import ValidationError
from breachwatch.incidents.alerts import AlertService
from breachwatch.incidents.manager import IncidentManager
from breachwatch.incidents.validator import IncidentValidator

logger = logging.getLogger("breachwatch.server.handlers.incident")

_validator = IncidentValidator()

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


def _manager(request: "web.Request") -> IncidentManager:
    return request.app["incident_manager"]


def _alerts(request: "web.Request") -> AlertService | None:
    return request.app.get("alert_service")


async def _read_json(request: "web.Request") -> dict[str, Any]:
    """
    Read a JSON object body.

    Raises:
        ValidationError: If the body is not valid JSON or not an object.
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _int_query(request: "web.Request", name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(
            f"Query parameter {name} must be an integer",
            {"field": name, "value": raw},
        ) from None
    if value < 0:
        raise ValidationError(
            f"Query parameter {name} must not be negative",
            {"field": name, "value": raw},
        )
    return value


def _require_string(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Field {name} is required", {"field": name})
    return value.strip()


async def list_incidents(request: "web.Request") -> "web.Response":
    """
    List incidents, oldest first.

    Query parameters:
        status: Filter by status
        severity: Filter by severity
        limit: Maximum results (default: 100, max: 1000)
        offset: Pagination offset (default: 0)
    """
    from aiohttp import web

    limit = min(_int_query(request, "limit", DEFAULT_LIMIT), MAX_LIMIT)
    offset = _int_query(request, "offset", 0)

    incidents = _manager(request).list_incidents(
        status=request.query.get("status") or None,
        severity=request.query.get("severity") or None,
        limit=limit,
        offset=offset,
    )
    return web.json_response({
        "incidents": [i.to_dict() for i in incidents],
        "count": len(incidents),
        "limit": limit,
        "offset": offset,
    })


async def create_incident(request: "web.Request") -> "web.Response":
    """
    Create a new incident.

    Request body:
        {
            "title": "Ransomware hits regional hospital",
            "description": "...",
            "severity": "critical",
            "discovery_date": "2024-03-01T08:00:00Z",
            "source_ids": ["cnn_feed"],
            "classifications": ["ransomware"]
        }
    """
    from aiohttp import web

    body = await _read_json(request)
    _validator.validate_create(body).raise_if_invalid()

    incident = _manager(request).create_incident(
        title=body["title"].strip(),
        description=body["description"].strip(),
        severity=body["severity"],
        discovery_date=body.get("discovery_date"),
        source_ids=body.get("source_ids"),
        classifications=body.get("classifications"),
    )
    return web.json_response(incident.to_dict(), status=201)


async def check_duplicate(request: "web.Request") -> "web.Response":
    """
    Check whether a report duplicates a known incident.

    Request body:
        {"title": "...", "source": "news_feed"}
    """
    from aiohttp import web

    body = await _read_json(request)
    title = _require_string(body, "title")
    source = _require_string(body, "source")

    result = _manager(request).check_duplicate(title, source)
    return web.json_response(result.to_dict())


async def submit_report(request: "web.Request") -> "web.Response":
    """
    Submit a report from a source.

    Creates an incident (201) unless the report duplicates a known one,
    in which case the matched incident is returned (200).

    Request body:
        {
            "title": "...",
            "description": "...",
            "severity": "high",
            "source": "blog1",
            "discovery_date": "...",
            "classifications": [...]
        }
    """
    from aiohttp import web

    body = await _read_json(request)
    source = _require_string(body, "source")
    _validator.validate_create(body).raise_if_invalid()

    incident, result = _manager(request).submit_report(
        title=body["title"].strip(),
        description=body["description"].strip(),
        severity=body["severity"],
        source=source,
        discovery_date=body.get("discovery_date"),
        classifications=body.get("classifications"),
    )
    return web.json_response(
        {"incident": incident.to_dict(), "duplicate": result.to_dict()},
        status=200 if result.is_duplicate else 201,
    )


async def get_stats(request: "web.Request") -> "web.Response":
    """Get incident counts by status and severity."""
    from aiohttp import web

    return web.json_response(_manager(request).get_stats())


async def get_incident(request: "web.Request") -> "web.Response":
    """Get a single incident by ID."""
    from aiohttp import web

    incident = _manager(request).get_or_raise(request.match_info["incident_id"])
    return web.json_response(incident.to_dict())


async def delete_incident(request: "web.Request") -> "web.Response":
    """Delete an incident together with its timeline and alerts."""
    from aiohttp import web

    incident_id = request.match_info["incident_id"]
    manager = _manager(request)
    manager.get_or_raise(incident_id)
    deleted = manager.delete_incident(incident_id)
    return web.json_response({"incident_id": incident_id, "deleted": deleted})


async def update_status(request: "web.Request") -> "web.Response":
    """
    Transition an incident to a new status.

    Request body:
        {"status": "confirmed"}
    """
    from aiohttp import web

    incident_id = request.match_info["incident_id"]
    body = await _read_json(request)
    status = _require_string(body, "status")

    incident = _manager(request).apply_transition(incident_id, status)
    return web.json_response(incident.to_dict())


async def get_timeline(request: "web.Request") -> "web.Response":
    """Get an incident's timeline in chronological order."""
    from aiohttp import web

    incident_id = request.match_info["incident_id"]
    manager = _manager(request)
    manager.get_or_raise(incident_id)
    events = manager.list_timeline(incident_id)
    return web.json_response({
        "incident_id": incident_id,
        "events": [e.to_dict() for e in events],
    })


async def add_timeline_event(request: "web.Request") -> "web.Response":
    """
    Add an annotation to an incident's timeline.

    Request body:
        {"event": "note", "details": {"text": "Vendor confirmed exposure"}}
    """
    from aiohttp import web

    incident_id = request.match_info["incident_id"]
    body = await _read_json(request)
    event = _require_string(body, "event")
    details = body.get("details") or {}
    if not isinstance(details, dict):
        raise ValidationError("Field details must be an object", {"field": "details"})

    appended = _manager(request).add_timeline_event(incident_id, event, details)
    return web.json_response(appended.to_dict(), status=201)


async def register_webhook(request: "web.Request") -> "web.Response":
    """
    Subscribe a webhook to an incident's alerts.

    Request body:
        {"url": "https://hooks.example.com/breachwatch"}
    """
    from aiohttp import web

    alerts = _alerts(request)
    if alerts is None:
        return web.json_response(
            {"error": {"type": "ServiceUnavailable", "message": "Alerts are disabled"}},
            status=503,
        )

    incident_id = request.match_info["incident_id"]
    body = await _read_json(request)
    _manager(request).get_or_raise(incident_id)
    alerts.register_webhook(incident_id, body.get("url"))
    return web.json_response(
        {"incident_id": incident_id, "webhooks": alerts.list_webhooks(incident_id)},
        status=201,
    )


async def list_alerts(request: "web.Request") -> "web.Response":
    """List the alerts recorded for an incident."""
    from aiohttp import web

    incident_id = request.match_info["incident_id"]
    _manager(request).get_or_raise(incident_id)
    alerts = _alerts(request)
    recorded = alerts.get_alerts(incident_id) if alerts else []
    return web.json_response({
        "incident_id": incident_id,
        "alerts": [a.to_dict() for a in recorded],
    })
