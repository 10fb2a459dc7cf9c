"""
Configuration schema definitions for BreachWatch.

This module defines the configuration structure using dataclasses.
Each section validates its own values in __post_init__.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class LogLevel(Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(Enum):
    """Where incidents are stored."""

    SQLITE = "sqlite"
    MEMORY = "memory"


@dataclass
class DatabaseConfig:
    """
    Database configuration options.

    Attributes:
        backend: "sqlite" for the SQLite repositories, "memory" for the
            in-process repositories (nothing survives a restart).
        path: Path to the SQLite database file. ":memory:" gives a
            throwaway SQLite database.
        pool_size: Maximum number of connections in the connection pool.
        timeout_seconds: Busy timeout in seconds for database operations.
    """

    backend: str = "sqlite"
    path: str = "breachwatch.db"
    pool_size: int = 5
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        valid_backends = [b.value for b in StorageBackend]
        if str(self.backend).lower() not in valid_backends:
            raise ValueError(f"backend must be one of: {valid_backends}")
        if self.pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


@dataclass
class DeduplicationConfig:
    """
    Duplicate report detection options.

    Attributes:
        enabled: When False, every submitted report creates an incident.
        cross_source_threshold: Title similarity a report from a new
            source must exceed to count as a duplicate.
        same_source_threshold: Title similarity a repeat report from a
            source already on the incident must exceed.
    """

    enabled: bool = True
    cross_source_threshold: float = 0.85
    same_source_threshold: float = 0.70

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name in ("cross_source_threshold", "same_source_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")


@dataclass
class AlertsConfig:
    """
    Webhook alert options.

    Attributes:
        enabled: Whether alerts are recorded and delivered at all.
        webhook_timeout_seconds: Timeout for a single webhook request.
        webhook_retries: Attempts per webhook before giving up.
        retry_backoff_seconds: Base delay between attempts.
    """

    enabled: bool = True
    webhook_timeout_seconds: float = 5.0
    webhook_retries: int = 3
    retry_backoff_seconds: float = 0.5

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.webhook_timeout_seconds <= 0:
            raise ValueError("webhook_timeout_seconds must be positive")
        if self.webhook_retries < 1:
            raise ValueError("webhook_retries must be at least 1")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be non-negative")


@dataclass
class LoggingConfig:
    """
    Logging configuration options.

    Attributes:
        level: Minimum log level to output. One of: DEBUG, INFO,
            WARNING, ERROR, CRITICAL.
        format: Log message format string for plain-text output.
        output_path: Path to log file. If empty, logs go to stderr.
        json_format: Whether to emit one JSON object per line.
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    output_path: str = ""
    json_format: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        valid_levels = [level.value for level in LogLevel]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"level must be one of: {valid_levels}")


@dataclass
class ServerConfig:
    """
    HTTP server configuration options.

    Attributes:
        host: Host address to bind the server to.
        port: Port number to listen on.
        rate_limit_requests: Maximum requests per client per window.
        rate_limit_window_seconds: Duration of the rate limit window.
    """

    host: str = "127.0.0.1"
    port: int = 8080
    rate_limit_requests: int = 1000
    rate_limit_window_seconds: int = 60

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.rate_limit_requests < 1:
            raise ValueError("rate_limit_requests must be at least 1")
        if self.rate_limit_window_seconds < 1:
            raise ValueError("rate_limit_window_seconds must be at least 1")


@dataclass
class BreachWatchConfig:
    """
    Root configuration object for BreachWatch.

    Attributes:
        environment: The environment profile name (development, staging,
            production, test).
        database: Storage configuration.
        deduplication: Duplicate detection thresholds.
        alerts: Webhook alert delivery settings.
        logging: Logging configuration.
        server: HTTP server configuration.
    """

    environment: str = "development"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        valid_environments = ["development", "staging", "production", "test"]
        if self.environment.lower() not in valid_environments:
            raise ValueError(f"environment must be one of: {valid_environments}")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)
