"""
Configuration system for BreachWatch.

Configuration is loaded from YAML files with environment variable
overrides and validated as a whole.
"""

from breachwatch.config.defaults import (
    get_default_config,
    get_development_config,
    get_production_config,
    get_test_config,
)
from breachwatch.config.loader import ConfigLoader, load_config
from breachwatch.config.schema import (
    AlertsConfig,
    BreachWatchConfig,
    DatabaseConfig,
    DeduplicationConfig,
    LoggingConfig,
    ServerConfig,
    StorageBackend,
)

__all__ = [
    "ConfigLoader",
    "load_config",
    "get_default_config",
    "get_development_config",
    "get_production_config",
    "get_test_config",
    "BreachWatchConfig",
    "DatabaseConfig",
    "DeduplicationConfig",
    "AlertsConfig",
    "LoggingConfig",
    "ServerConfig",
    "StorageBackend",
]
