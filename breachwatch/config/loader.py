"""
Configuration loader for BreachWatch.

This module provides the ConfigLoader class for loading configuration
from YAML files with environment variable overrides.
"""

import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Callable

import yaml

from breachwatch.config.defaults import (
    get_default_config,
    get_development_config,
    get_production_config,
    get_test_config,
)
from breachwatch.config.schema import BreachWatchConfig
from breachwatch.exceptions import ConfigurationError

SECTIONS = ("database", "deduplication", "alerts", "logging", "server")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    if value.lower() in ("true", "1", "yes", "on"):
        return True
    if value.lower() in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"Cannot parse '{value}' as boolean")


# Environment variable -> (dotted config path, converter)
ENV_MAPPING: dict[str, tuple[str, Callable[[str], Any]]] = {
    "BREACHWATCH_ENVIRONMENT": ("environment", str),
    # Database
    "BREACHWATCH_DATABASE_BACKEND": ("database.backend", str),
    "BREACHWATCH_DATABASE_PATH": ("database.path", str),
    "BREACHWATCH_DATABASE_POOL_SIZE": ("database.pool_size", int),
    "BREACHWATCH_DATABASE_TIMEOUT_SECONDS": ("database.timeout_seconds", float),
    # Deduplication
    "BREACHWATCH_DEDUPLICATION_ENABLED": ("deduplication.enabled", _parse_bool),
    "BREACHWATCH_DEDUPLICATION_CROSS_SOURCE_THRESHOLD": (
        "deduplication.cross_source_threshold",
        float,
    ),
    "BREACHWATCH_DEDUPLICATION_SAME_SOURCE_THRESHOLD": (
        "deduplication.same_source_threshold",
        float,
    ),
    # Alerts
    "BREACHWATCH_ALERTS_ENABLED": ("alerts.enabled", _parse_bool),
    "BREACHWATCH_ALERTS_WEBHOOK_TIMEOUT_SECONDS": (
        "alerts.webhook_timeout_seconds",
        float,
    ),
    "BREACHWATCH_ALERTS_WEBHOOK_RETRIES": ("alerts.webhook_retries", int),
    "BREACHWATCH_ALERTS_RETRY_BACKOFF_SECONDS": (
        "alerts.retry_backoff_seconds",
        float,
    ),
    # Logging
    "BREACHWATCH_LOGGING_LEVEL": ("logging.level", str),
    "BREACHWATCH_LOGGING_OUTPUT_PATH": ("logging.output_path", str),
    "BREACHWATCH_LOGGING_JSON_FORMAT": ("logging.json_format", _parse_bool),
    # Server
    "BREACHWATCH_SERVER_HOST": ("server.host", str),
    "BREACHWATCH_SERVER_PORT": ("server.port", int),
    "BREACHWATCH_SERVER_RATE_LIMIT_REQUESTS": ("server.rate_limit_requests", int),
}


class ConfigLoader:
    """
    Loads and validates BreachWatch configuration.

    Sources are applied in order, later ones overriding earlier ones:
    1. Defaults for the environment profile
    2. A YAML configuration file
    3. Environment variables (BREACHWATCH_ prefix)

    Example:
        Loading configuration::

            loader = ConfigLoader()
            config = loader.load("breachwatch.yaml", environment="production")
    """

    ENV_PREFIX = "BREACHWATCH_"

    def __init__(self) -> None:
        """Initialize the configuration loader."""
        self._config: BreachWatchConfig | None = None

    def load(
        self,
        config_path: str | Path | None = None,
        environment: str | None = None,
    ) -> BreachWatchConfig:
        """
        Load configuration from file and environment.

        Args:
            config_path: Path to a YAML configuration file. If None,
                only defaults and environment variables are used.
            environment: Environment profile to use. Overrides any
                environment setting in the config file.

        Returns:
            A validated BreachWatchConfig object.

        Raises:
            ConfigurationError: If configuration is invalid or the file
                cannot be read.
        """
        if environment:
            config = self._get_environment_defaults(environment)
        else:
            config = get_default_config()

        if config_path:
            config = self._merge_config(config, self._load_yaml(config_path))

        config = self._apply_env_overrides(config)

        if environment:
            config.environment = environment

        self._validate(config)

        self._config = config
        return config

    def _get_environment_defaults(self, environment: str) -> BreachWatchConfig:
        """Get default configuration for an environment."""
        profiles = {
            "production": get_production_config,
            "development": get_development_config,
            "test": get_test_config,
        }
        factory = profiles.get(environment.lower())
        if factory is not None:
            return factory()
        config = get_default_config()
        config.environment = environment
        return config

    def _load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load configuration from a YAML file.

        Raises:
            ConfigurationError: If file not found or invalid YAML.
        """
        path = Path(path)

        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                details={"path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                details={"path": str(path)},
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration file: {e}",
                details={"path": str(path)},
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                details={"path": str(path)},
            )
        return data

    def _merge_config(
        self,
        base: BreachWatchConfig,
        override: dict[str, Any],
    ) -> BreachWatchConfig:
        """
        Merge file configuration into base configuration.

        Values are assigned without validation; _validate checks the
        result as a whole so every problem is reported at once.

        Raises:
            ConfigurationError: If the file names an unknown section or key.
        """
        for key, value in override.items():
            if key == "environment":
                base.environment = str(value)
                continue
            if key not in SECTIONS:
                raise ConfigurationError(
                    f"Unknown configuration section: {key}",
                    details={"section": key},
                )
            if not isinstance(value, dict):
                raise ConfigurationError(
                    f"Configuration section {key} must be a mapping",
                    details={"section": key},
                )

            section = getattr(base, key)
            known = {f.name for f in fields(section)}
            for option, option_value in value.items():
                if option not in known:
                    raise ConfigurationError(
                        f"Unknown configuration option: {key}.{option}",
                        details={"section": key, "option": option},
                    )
                setattr(section, option, option_value)

        return base

    def _apply_env_overrides(self, config: BreachWatchConfig) -> BreachWatchConfig:
        """
        Apply environment variable overrides to configuration.

        Environment variables use the format BREACHWATCH_SECTION_OPTION,
        for example BREACHWATCH_DATABASE_PATH=incidents.db or
        BREACHWATCH_LOGGING_LEVEL=DEBUG.
        """
        for env_var, (path, converter) in ENV_MAPPING.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                self._set_nested_attr(config, path, converter(value))
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid value for {env_var}: {e}",
                    details={"env_var": env_var, "value": value},
                ) from e

        return config

    def _set_nested_attr(self, obj: Any, path: str, value: Any) -> None:
        """Set a nested attribute using dot notation."""
        parts = path.split(".")
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)

    def _validate(self, config: BreachWatchConfig) -> None:
        """
        Validate the complete configuration.

        Each section is rebuilt from its current values so that its
        __post_init__ checks run again.

        Raises:
            ConfigurationError: Listing every failing section.
        """
        errors: list[str] = []

        for name in SECTIONS:
            section = getattr(config, name)
            try:
                type(section)(**asdict(section))
            except (ValueError, TypeError, AttributeError) as e:
                errors.append(f"{name}: {e}")

        try:
            BreachWatchConfig(environment=config.environment)
        except ValueError as e:
            errors.append(f"environment: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                details={"errors": errors},
            )

    @property
    def config(self) -> BreachWatchConfig:
        """Get the currently loaded configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded. Call load() first.")
        return self._config


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> BreachWatchConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to a YAML configuration file.
        environment: Environment profile to use.

    Returns:
        A validated BreachWatchConfig object.
    """
    return ConfigLoader().load(config_path, environment)
