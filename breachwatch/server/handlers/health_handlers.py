"""
Health and readiness check handlers.
"""

import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from breachwatch.version import __version__

logger = logging.getLogger("breachwatch.server.handlers.health")


async def health_check(request: "web.Request") -> "web.Response":
    """
    Liveness check.

    Returns OK whenever the process is serving requests, without touching
    storage, so it is suitable for load balancer health checks.
    """
    from aiohttp import web

    return web.json_response({
        "status": "healthy",
        "version": __version__,
        "timestamp": time.time(),
    })


async def readiness_check(request: "web.Request") -> "web.Response":
    """
    Readiness check.

    Reports 503 until the incident manager is initialized and storage
    answers a trivial query.
    """
    from aiohttp import web

    app = request.app
    checks: dict[str, dict[str, str]] = {}

    stores = app.get("stores")
    if stores is None:
        checks["storage"] = {"status": "not_configured"}
    elif stores.health_check():
        checks["storage"] = {"status": "ready"}
    else:
        logger.warning("Readiness check failed: storage unavailable")
        checks["storage"] = {"status": "error"}

    if app.get("incident_manager") is not None:
        checks["incidents"] = {"status": "ready"}
    else:
        checks["incidents"] = {"status": "not_configured"}

    all_ready = all(check["status"] == "ready" for check in checks.values())
    return web.json_response(
        {
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
            "timestamp": time.time(),
        },
        status=200 if all_ready else 503,
    )
