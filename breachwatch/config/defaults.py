"""
Default configuration values for BreachWatch.

Profiles start from get_default_config() and adjust a few settings per
environment. YAML files and environment variables are applied on top.
"""

from breachwatch.config.schema import (
    AlertsConfig,
    BreachWatchConfig,
    DatabaseConfig,
    DeduplicationConfig,
    LoggingConfig,
    ServerConfig,
)


def get_default_config() -> BreachWatchConfig:
    """
    Get the default configuration.

    Returns:
        BreachWatchConfig with default values.
    """
    return BreachWatchConfig(
        environment="development",
        database=DatabaseConfig(
            backend="sqlite",
            path="breachwatch.db",
            pool_size=5,
            timeout_seconds=30.0,
        ),
        deduplication=DeduplicationConfig(
            enabled=True,
            cross_source_threshold=0.85,
            same_source_threshold=0.70,
        ),
        alerts=AlertsConfig(
            enabled=True,
            webhook_timeout_seconds=5.0,
            webhook_retries=3,
            retry_backoff_seconds=0.5,
        ),
        logging=LoggingConfig(
            level="INFO",
            output_path="",  # stderr only by default
            json_format=False,
        ),
        server=ServerConfig(
            host="127.0.0.1",  # Localhost only by default
            port=8080,
            rate_limit_requests=1000,
            rate_limit_window_seconds=60,
        ),
    )


def get_production_config() -> BreachWatchConfig:
    """Get a production configuration with quieter, structured logging."""
    config = get_default_config()
    config.environment = "production"
    config.logging.level = "WARNING"
    config.logging.json_format = True
    return config


def get_development_config() -> BreachWatchConfig:
    """Get a development configuration with verbose logging."""
    config = get_default_config()
    config.environment = "development"
    config.logging.level = "DEBUG"
    config.database.path = "breachwatch_dev.db"
    return config


def get_test_config() -> BreachWatchConfig:
    """
    Get a test configuration.

    Uses the in-memory backend and disables webhook retries so tests never
    wait on the network.
    """
    config = get_default_config()
    config.environment = "test"
    config.database.backend = "memory"
    config.database.path = ":memory:"
    config.logging.level = "DEBUG"
    config.alerts.webhook_retries = 1
    config.alerts.retry_backoff_seconds = 0.0
    return config
