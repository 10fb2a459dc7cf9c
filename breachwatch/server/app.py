"""
BreachWatch HTTP server application.

This module provides the application factory and server runner for the
BreachWatch HTTP API.

Example:
    Running the server::

        from breachwatch.server import create_app, run_server
        from breachwatch.config import load_config

        config = load_config("breachwatch.yaml")
        run_server(create_app(config), config.server.host, config.server.port)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from breachwatch.config.schema import BreachWatchConfig
from breachwatch.incidents.alerts import AlertService
from breachwatch.incidents.deduplication import DeduplicationEngine, DeduplicationSettings
from breachwatch.incidents.manager import IncidentManager
from breachwatch.storage import Stores, create_stores

logger = logging.getLogger("breachwatch.server")


class BreachWatchApplication:
    """
    BreachWatch HTTP application.

    Wraps the aiohttp application with BreachWatch-specific setup and
    lifecycle management. Storage, the incident manager, and the alert
    service are created on startup and released on cleanup.

    Args:
        config: BreachWatch configuration.
        stores: Pre-built stores to serve from. When omitted they are
            created from config.database on startup and closed on cleanup.
    """

    def __init__(
        self,
        config: BreachWatchConfig | None = None,
        stores: Stores | None = None,
    ) -> None:
        self._config = config or BreachWatchConfig()
        self._stores = stores
        self._owns_stores = stores is None
        self._app: "web.Application | None" = None
        self._rate_limiter = None
        self._executor: ThreadPoolExecutor | None = None

    @property
    def config(self) -> BreachWatchConfig:
        return self._config

    @property
    def app(self) -> "web.Application":
        """Get the aiohttp application, creating it if needed."""
        if self._app is None:
            self._app = self._create_app()
        return self._app

    def _create_app(self) -> "web.Application":
        """Create and configure the aiohttp application."""
        from aiohttp import web

        from breachwatch.server.middleware import (
            create_error_handler_middleware,
            create_rate_limit_middleware,
            create_request_id_middleware,
            create_request_logging_middleware,
        )
        from breachwatch.server.routes import setup_routes

        rate_limit_middleware, self._rate_limiter = create_rate_limit_middleware(
            max_requests=self._config.server.rate_limit_requests,
            window_seconds=self._config.server.rate_limit_window_seconds,
        )

        app = web.Application(
            middlewares=[
                create_request_id_middleware(),
                create_request_logging_middleware(),
                create_error_handler_middleware(),
                rate_limit_middleware,
            ]
        )
        app["config"] = self._config

        setup_routes(app)

        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: "web.Application") -> None:
        """Initialize storage and services."""
        logger.info("Starting BreachWatch server...")

        if self._stores is None:
            self._stores = create_stores(self._config.database)
            logger.info(
                f"Storage initialized: backend={self._config.database.backend} "
                f"path={self._config.database.path}"
            )
        app["stores"] = self._stores

        dedup = self._config.deduplication
        manager = IncidentManager(
            self._stores.incidents,
            self._stores.timeline,
            DeduplicationEngine(
                DeduplicationSettings(
                    enabled=dedup.enabled,
                    same_source_threshold=dedup.same_source_threshold,
                    cross_source_threshold=dedup.cross_source_threshold,
                )
            ),
        )
        app["incident_manager"] = manager

        if self._config.alerts.enabled:
            self._executor = ThreadPoolExecutor(
                max_workers=4, thread_name_prefix="breachwatch-webhook"
            )
            alert_service = AlertService(
                self._stores.alerts,
                timeout_seconds=self._config.alerts.webhook_timeout_seconds,
                retries=self._config.alerts.webhook_retries,
                retry_backoff_seconds=self._config.alerts.retry_backoff_seconds,
                executor=self._executor,
            )
            manager.on_event(alert_service.handle_event)
            app["alert_service"] = alert_service
            logger.info("Alert service initialized")

        logger.info("BreachWatch server started")

    async def _on_cleanup(self, app: "web.Application") -> None:
        """Release resources on shutdown."""
        logger.info("Shutting down BreachWatch server...")

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        if self._rate_limiter is not None:
            await self._rate_limiter.cleanup()

        if self._owns_stores and self._stores is not None:
            self._stores.close()
            self._stores = None
            logger.info("Storage closed")

        logger.info("BreachWatch server shut down")

    def run(self) -> None:
        """Run the server (blocking)."""
        run_server(self.app, self._config.server.host, self._config.server.port)


def create_app(
    config: BreachWatchConfig | None = None,
    stores: Stores | None = None,
) -> "web.Application":
    """
    Create a BreachWatch HTTP application.

    Args:
        config: BreachWatch configuration.
        stores: Pre-built stores, mainly for tests.

    Returns:
        Configured aiohttp Application.
    """
    return BreachWatchApplication(config, stores).app


def run_server(
    app: "web.Application | None" = None,
    host: str = "127.0.0.1",
    port: int = 8080,
    config: BreachWatchConfig | None = None,
) -> None:
    """
    Run the BreachWatch HTTP server until interrupted.

    Args:
        app: Pre-created application; built from config when omitted.
        host: Host address to bind to.
        port: Port number to listen on.
        config: Configuration used when app is not provided.
    """
    from aiohttp import web

    if app is None:
        app = create_app(config)

    logger.info(f"Starting BreachWatch server on http://{host}:{port}")
    web.run_app(app, host=host, port=port, print=lambda msg: logger.info(msg))
