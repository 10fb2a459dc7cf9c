"""
API route definitions for the BreachWatch server.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Coroutine

if TYPE_CHECKING:
    from aiohttp import web

from breachwatch.server.handlers import health_handlers, incident_handlers

logger = logging.getLogger("breachwatch.server.routes")


@dataclass
class Route:
    """
    API route definition.

    Attributes:
        method: HTTP method (GET, POST, PATCH, DELETE).
        path: URL path pattern.
        handler: Async handler function.
        name: Route name for reverse URL lookup.
    """

    method: str
    path: str
    handler: Callable[["web.Request"], Coroutine[Any, Any, "web.StreamResponse"]]
    name: str = ""


# Fixed paths under /v1/incidents are listed before /v1/incidents/{incident_id}
# so they are not captured by the dynamic segment.
ROUTES: list[Route] = [
    Route("GET", "/v1/health", health_handlers.health_check, "health"),
    Route("GET", "/v1/ready", health_handlers.readiness_check, "ready"),
    Route("GET", "/v1/incidents", incident_handlers.list_incidents, "incidents_list"),
    Route("POST", "/v1/incidents", incident_handlers.create_incident, "incidents_create"),
    Route(
        "POST",
        "/v1/incidents/check-duplicate",
        incident_handlers.check_duplicate,
        "incidents_check_duplicate",
    ),
    Route("GET", "/v1/incidents/stats", incident_handlers.get_stats, "incidents_stats"),
    Route("POST", "/v1/reports", incident_handlers.submit_report, "reports_submit"),
    Route(
        "GET",
        "/v1/incidents/{incident_id}",
        incident_handlers.get_incident,
        "incidents_get",
    ),
    Route(
        "DELETE",
        "/v1/incidents/{incident_id}",
        incident_handlers.delete_incident,
        "incidents_delete",
    ),
    Route(
        "PATCH",
        "/v1/incidents/{incident_id}/status",
        incident_handlers.update_status,
        "incidents_status",
    ),
    Route(
        "GET",
        "/v1/incidents/{incident_id}/timeline",
        incident_handlers.get_timeline,
        "incidents_timeline",
    ),
    Route(
        "POST",
        "/v1/incidents/{incident_id}/timeline",
        incident_handlers.add_timeline_event,
        "incidents_timeline_add",
    ),
    Route(
        "POST",
        "/v1/incidents/{incident_id}/webhooks",
        incident_handlers.register_webhook,
        "incidents_webhooks",
    ),
    Route(
        "GET",
        "/v1/incidents/{incident_id}/alerts",
        incident_handlers.list_alerts,
        "incidents_alerts",
    ),
]


def setup_routes(app: "web.Application") -> None:
    """
    Register every API route on the application.

    Args:
        app: The aiohttp application instance.
    """
    for route in ROUTES:
        app.router.add_route(route.method, route.path, route.handler, name=route.name)
    logger.debug(f"Registered {len(ROUTES)} routes")
