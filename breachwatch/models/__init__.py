"""
Shared model helpers for BreachWatch.

Domain models live with their subsystems (see breachwatch.incidents.models);
this package holds the id, timestamp, and serialization helpers they share.
"""

from breachwatch.models.base import (
    generate_uuid,
    model_to_dict,
    model_to_json,
    parse_datetime,
    serialize_value,
    utc_now,
)

__all__ = [
    "generate_uuid",
    "model_to_dict",
    "model_to_json",
    "parse_datetime",
    "serialize_value",
    "utc_now",
]
