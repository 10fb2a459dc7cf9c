"""
Serialization helpers shared by BreachWatch data models.

BreachWatch models are frozen dataclasses; these standalone functions give
them consistent dict/JSON conversion along with id and timestamp helpers.
"""

import json
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any


def generate_uuid() -> str:
    """Generate a new UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """
    Parse an ISO 8601 string into an aware datetime.

    Naive values are assumed to be UTC. A trailing "Z" is accepted.

    Args:
        value: ISO string, datetime, or None.

    Returns:
        The parsed datetime, or None if value was None.

    Raises:
        ValueError: If the string is not valid ISO 8601.
        TypeError: If value is neither a string nor a datetime.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        raise TypeError(f"Expected ISO 8601 string, got {type(value).__name__}")
    else:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_value(value: Any, exclude_none: bool = False) -> Any:
    """
    Serialize a single value to a JSON-compatible type.

    Args:
        value: Value to serialize.
        exclude_none: If True, exclude None values in nested dicts/lists.

    Returns:
        JSON-compatible representation of the value.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, dict):
        result = {}
        for k, v in value.items():
            if exclude_none and v is None:
                continue
            result[k] = serialize_value(v, exclude_none)
        return result
    elif isinstance(value, (list, tuple, frozenset, set)):
        return [serialize_value(item, exclude_none) for item in value]
    elif hasattr(value, "to_dict"):
        return value.to_dict(exclude_none)
    elif hasattr(value, "value"):
        # Enums
        return value.value
    return value


def model_to_dict(instance: Any, exclude_none: bool = False) -> dict[str, Any]:
    """
    Convert a dataclass instance to a dictionary.

    Args:
        instance: A dataclass instance to convert.
        exclude_none: If True, exclude keys with None values from the output.

    Returns:
        A dictionary with all fields serialized to JSON-compatible types.
    """
    result = asdict(instance)
    return {
        k: serialize_value(v, exclude_none)
        for k, v in result.items()
        if not (exclude_none and v is None)
    }


def model_to_json(
    instance: Any, indent: int | None = None, exclude_none: bool = False
) -> str:
    """
    Convert a dataclass instance to a JSON string.

    Args:
        instance: A dataclass instance to convert.
        indent: Number of spaces for indentation. If None, output is compact.
        exclude_none: If True, exclude keys with None values from the output.

    Returns:
        A JSON string representation of the instance.
    """
    return json.dumps(model_to_dict(instance, exclude_none), indent=indent)
