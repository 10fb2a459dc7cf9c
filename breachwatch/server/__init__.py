"""
HTTP server module for BreachWatch.

This module exposes the incident tracker as a JSON API using aiohttp.
BreachWatch works as a library without running the server.

Example:
    Running the server::

        from breachwatch.server import create_app, run_server

        run_server(create_app(), host="0.0.0.0", port=8080)

    Or from the command line::

        breachwatch serve --host 0.0.0.0 --port 8080

Components:
    - app: Application factory and runner
    - routes: API route definitions
    - middleware: Request ids, error mapping, rate limiting, request logging
"""

from breachwatch.server.app import BreachWatchApplication, create_app, run_server

__all__ = [
    "BreachWatchApplication",
    "create_app",
    "run_server",
]
