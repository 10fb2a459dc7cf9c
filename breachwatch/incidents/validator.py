"""
Input validation for BreachWatch incident data.

Validators collect every problem with a payload instead of stopping at the
first one, so a client can fix all of them in a single round trip. They are
used at the HTTP and CLI boundaries; the core itself only rejects unknown
enum values.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from breachwatch.exceptions import ValidationError
from breachwatch.incidents.models import IncidentSeverity
from breachwatch.models.base import parse_datetime


class ValidationSeverity(Enum):
    """Severity level for validation messages."""

    ERROR = "error"
    """Problem that prevents the operation."""

    WARNING = "warning"
    """Problem worth reporting that does not block the operation."""


@dataclass
class ValidationMessage:
    """
    A single validation message.

    Attributes:
        severity: Severity level of the message.
        field: The field that the message relates to.
        message: Human-readable description of the issue.
        code: Machine-readable error code for programmatic handling.
    """

    severity: ValidationSeverity
    field: str
    message: str
    code: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "severity": self.severity.value,
            "field": self.field,
            "message": self.message,
            "code": self.code,
        }


@dataclass
class ValidationResult:
    """
    Result of validating an incident payload.

    Attributes:
        valid: Whether the payload passed validation (no errors).
        messages: List of validation messages.
    """

    valid: bool = True
    messages: list[ValidationMessage] = field(default_factory=list)

    def add_error(self, field: str, message: str, code: str = "") -> None:
        """Add an error message."""
        self.messages.append(
            ValidationMessage(ValidationSeverity.ERROR, field, message, code)
        )
        self.valid = False

    def add_warning(self, field: str, message: str, code: str = "") -> None:
        """Add a warning message."""
        self.messages.append(
            ValidationMessage(ValidationSeverity.WARNING, field, message, code)
        )

    @property
    def errors(self) -> list[ValidationMessage]:
        """Get only error messages."""
        return [m for m in self.messages if m.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationMessage]:
        """Get only warning messages."""
        return [m for m in self.messages if m.severity == ValidationSeverity.WARNING]

    def raise_if_invalid(self) -> None:
        """
        Raise if any error was collected.

        Raises:
            ValidationError: With every error message in details["errors"].
        """
        if self.valid:
            return
        first = self.errors[0]
        summary = first.message
        if len(self.errors) > 1:
            summary = f"{summary} (and {len(self.errors) - 1} more)"
        raise ValidationError(
            summary,
            {"errors": [m.to_dict() for m in self.errors]},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert result to a dictionary."""
        return {
            "valid": self.valid,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "messages": [m.to_dict() for m in self.messages],
        }


class IncidentValidator:
    """
    Validates incident payloads before they reach the manager.

    Example:
        Validating a create request::

            validator = IncidentValidator()
            validator.validate_create(payload).raise_if_invalid()
    """

    MIN_TITLE_LENGTH = 5
    MAX_TITLE_LENGTH = 500
    MIN_DESCRIPTION_LENGTH = 10
    MAX_DESCRIPTION_LENGTH = 5000

    def validate_create(self, data: dict[str, Any]) -> ValidationResult:
        """
        Validate the fields of a new incident.

        Args:
            data: Mapping with title, description, severity, and optionally
                discovery_date, source_ids, and classifications.

        Returns:
            ValidationResult listing every problem found.
        """
        result = ValidationResult()
        self._validate_title(data.get("title"), result)
        self._validate_description(data.get("description"), result)
        self._validate_severity(data.get("severity"), result)

        if data.get("discovery_date") is not None:
            self._validate_date("discovery_date", data["discovery_date"], result)

        for name in ("source_ids", "classifications"):
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(item, str) and item for item in value
            ):
                result.add_error(
                    name,
                    f"{name} must be a list of non-empty strings",
                    "INVALID_FORMAT",
                )

        return result

    def _validate_title(self, title: Any, result: ValidationResult) -> None:
        if not isinstance(title, str) or not title.strip():
            result.add_error("title", "Title is required", "REQUIRED_FIELD")
            return
        length = len(title.strip())
        if length < self.MIN_TITLE_LENGTH:
            result.add_error(
                "title",
                f"Title must be at least {self.MIN_TITLE_LENGTH} characters",
                "TOO_SHORT",
            )
        elif length > self.MAX_TITLE_LENGTH:
            result.add_error(
                "title",
                f"Title must be at most {self.MAX_TITLE_LENGTH} characters",
                "TOO_LONG",
            )

    def _validate_description(self, description: Any, result: ValidationResult) -> None:
        if not isinstance(description, str) or not description.strip():
            result.add_error("description", "Description is required", "REQUIRED_FIELD")
            return
        length = len(description.strip())
        if length < self.MIN_DESCRIPTION_LENGTH:
            result.add_error(
                "description",
                f"Description must be at least {self.MIN_DESCRIPTION_LENGTH} characters",
                "TOO_SHORT",
            )
        elif length > self.MAX_DESCRIPTION_LENGTH:
            result.add_error(
                "description",
                f"Description must be at most {self.MAX_DESCRIPTION_LENGTH} characters",
                "TOO_LONG",
            )

    def _validate_severity(self, severity: Any, result: ValidationResult) -> None:
        if severity is None or severity == "":
            result.add_error("severity", "Severity is required", "REQUIRED_FIELD")
            return
        self._validate_enum("severity", severity, IncidentSeverity, result)

    def _validate_enum(
        self,
        name: str,
        value: Any,
        enum_type: type[Enum],
        result: ValidationResult,
    ) -> None:
        if isinstance(value, enum_type):
            return
        allowed = [member.value for member in enum_type]
        if not isinstance(value, str) or value.strip().lower() not in allowed:
            result.add_error(
                name,
                f"Invalid {name} {value!r}; must be one of: {', '.join(allowed)}",
                "INVALID_VALUE",
            )

    def _validate_date(self, name: str, value: Any, result: ValidationResult) -> None:
        if not isinstance(value, str):
            result.add_error(name, f"{name} must be an ISO 8601 string", "INVALID_FORMAT")
            return
        try:
            parse_datetime(value)
        except ValueError:
            result.add_error(
                name,
                f"{name} is not a valid ISO 8601 date: {value!r}",
                "INVALID_FORMAT",
            )


class SourceValidator:
    """Validates webhook endpoints registered for alert delivery."""

    ALLOWED_SCHEMES = frozenset({"http", "https"})

    def validate_webhook_url(self, url: Any) -> ValidationResult:
        """
        Validate a webhook URL.

        Args:
            url: The candidate URL.

        Returns:
            ValidationResult with an error unless url is an absolute http(s)
            URL with a host.
        """
        result = ValidationResult()
        if not isinstance(url, str) or not url.strip():
            result.add_error("url", "Webhook URL is required", "REQUIRED_FIELD")
            return result

        parsed = urlparse(url.strip())
        if parsed.scheme not in self.ALLOWED_SCHEMES:
            result.add_error(
                "url",
                "Webhook URL must use http or https",
                "INVALID_SCHEME",
            )
        if not parsed.netloc:
            result.add_error("url", "Webhook URL must include a host", "INVALID_FORMAT")
        elif parsed.scheme == "http":
            result.add_warning(
                "url",
                "Webhook URL is not encrypted; prefer https",
                "INSECURE_SCHEME",
            )
        return result
