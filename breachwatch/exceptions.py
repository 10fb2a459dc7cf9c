"""
Exception classes for BreachWatch.

This module defines the exception hierarchy used throughout BreachWatch.
All custom exceptions inherit from BreachWatchError to allow for easy
catching of any BreachWatch-specific exception.
"""

from typing import Any


class BreachWatchError(Exception):
    """
    Base exception for all BreachWatch errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(BreachWatchError):
    """
    Raised when there is an error in BreachWatch configuration.

    Examples:
        - Missing configuration file
        - Invalid YAML syntax in configuration
        - Deduplication threshold outside [0, 1]
        - Unparseable environment variable override
    """

    pass


class ValidationError(BreachWatchError):
    """
    Raised when input data fails validation.

    Examples:
        - Unrecognized severity or status value
        - Title shorter than the minimum length
        - Discovery date that is not ISO 8601
        - Webhook URL without a scheme or host
    """

    pass


class StorageError(BreachWatchError):
    """
    Raised when there is an error in the storage layer.

    Examples:
        - Database connection failed
        - Query execution error
        - Constraint violation
    """

    pass


class IncidentError(BreachWatchError):
    """
    Raised when there is an error in incident management.

    More specific failures use the subclasses below so that callers can
    map them to distinct client-facing responses.
    """

    pass


class IncidentNotFoundError(IncidentError):
    """
    Raised when a referenced incident does not exist.

    Attributes:
        incident_id: The identifier that could not be resolved.
    """

    def __init__(self, incident_id: str) -> None:
        super().__init__(
            f"Incident not found: {incident_id}",
            {"incident_id": incident_id},
        )
        self.incident_id = incident_id


class InvalidTransitionError(IncidentError):
    """
    Raised when a requested status is not reachable from the current status.

    Attributes:
        incident_id: The incident whose transition was rejected.
        current_status: Status the incident was in.
        requested_status: Status that was requested.
    """

    def __init__(
        self,
        incident_id: str,
        current_status: str,
        requested_status: str,
    ) -> None:
        super().__init__(
            f"Invalid status transition: {current_status} -> {requested_status}",
            {
                "incident_id": incident_id,
                "current_status": current_status,
                "requested_status": requested_status,
            },
        )
        self.incident_id = incident_id
        self.current_status = current_status
        self.requested_status = requested_status


class AlertError(BreachWatchError):
    """
    Raised when an alert cannot be recorded or delivered.

    Examples:
        - Webhook endpoint returned an error status
        - Webhook endpoint unreachable after all retries
    """

    pass
