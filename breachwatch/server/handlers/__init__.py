"""
API handlers for the BreachWatch server.

Modules:
    health_handlers: Health and readiness checks
    incident_handlers: Incident, timeline, report, and alert endpoints
"""

from breachwatch.server.handlers import health_handlers, incident_handlers

__all__ = [
    "health_handlers",
    "incident_handlers",
]
