"""
Output formatters for the BreachWatch CLI.

Command results are plain dictionaries and lists; these helpers render
them as a human-readable table, JSON, or YAML.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

import yaml


def format_output(
    data: Any,
    output_format: str = "table",
    title: str | None = None,
) -> str:
    """
    Format data for output in the specified format.

    Args:
        data: Data to format.
        output_format: Output format (table, json, yaml).
        title: Optional title for table format.

    Returns:
        Formatted string.
    """
    if output_format == "json":
        return JsonFormatter.format(data)
    elif output_format == "yaml":
        return YamlFormatter.format(data)
    else:
        return TableFormatter.format(data, title=title)


class JsonFormatter:
    """Format data as JSON."""

    @staticmethod
    def format(data: Any, indent: int = 2) -> str:
        return json.dumps(
            data,
            indent=indent,
            default=_json_serializer,
            ensure_ascii=False,
        )


class YamlFormatter:
    """Format data as YAML."""

    @staticmethod
    def format(data: Any) -> str:
        return yaml.safe_dump(
            _to_plain(data),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


class TableFormatter:
    """Format data as aligned key/value blocks or an ASCII table."""

    @staticmethod
    def format(data: Any, title: str | None = None) -> str:
        """
        Format a dict as aligned "key: value" lines, or a list of dicts as
        numbered blocks.

        Args:
            data: Data to format.
            title: Optional title, underlined.

        Returns:
            Formatted string.
        """
        lines: list[str] = []

        if title:
            lines.append(title)
            lines.append("-" * len(title))
            lines.append("")

        data = _to_plain(data)
        if isinstance(data, dict):
            lines.extend(TableFormatter._format_dict(data))
        elif isinstance(data, list):
            lines.extend(TableFormatter._format_list(data))
        else:
            lines.append(str(data))

        return "\n".join(lines)

    @staticmethod
    def _format_dict(data: dict[str, Any], indent: int = 0) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent
        width = max((len(str(k)) for k in data), default=0)

        for key, value in data.items():
            key_str = str(key).ljust(width)
            if isinstance(value, dict):
                if not value:
                    lines.append(f"{prefix}{key_str}: {{}}")
                    continue
                lines.append(f"{prefix}{key_str}:")
                lines.extend(TableFormatter._format_dict(value, indent + 1))
            elif isinstance(value, list):
                if all(isinstance(v, (str, int, float, bool)) for v in value):
                    lines.append(f"{prefix}{key_str}: [{', '.join(str(v) for v in value)}]")
                else:
                    lines.append(f"{prefix}{key_str}:")
                    lines.extend(TableFormatter._format_list(value, indent + 1))
            else:
                lines.append(f"{prefix}{key_str}: {'' if value is None else value}")

        return lines

    @staticmethod
    def _format_list(data: list[Any], indent: int = 0) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent

        for i, item in enumerate(data):
            if isinstance(item, dict):
                if i > 0:
                    lines.append("")
                lines.append(f"{prefix}[{i + 1}]")
                lines.extend(TableFormatter._format_dict(item, indent + 1))
            else:
                lines.append(f"{prefix}- {item}")

        return lines

    @staticmethod
    def format_table(
        headers: list[str],
        rows: list[list[Any]],
        max_col_width: int = 40,
    ) -> str:
        """
        Format rows as an ASCII table.

        Args:
            headers: Column headers.
            rows: Data rows; short rows are padded.
            max_col_width: Cells longer than this are truncated.

        Returns:
            Formatted table string.
        """
        if not headers:
            return ""

        cells = [
            [_truncate(str(cell), max_col_width) for cell in list(row) + [""] * (len(headers) - len(row))]
            for row in rows
        ]
        widths = [len(h) for h in headers]
        for row in cells:
            for i, cell in enumerate(row[: len(headers)]):
                widths[i] = max(widths[i], len(cell))

        row_format = " | ".join(f"{{:<{w}}}" for w in widths)
        lines = [row_format.format(*headers), "-+-".join("-" * w for w in widths)]
        lines.extend(row_format.format(*row[: len(headers)]) for row in cells)
        return "\n".join(lines)


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _json_serializer(obj: Any) -> Any:
    """JSON serializer for non-standard types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _to_plain(data: Any) -> Any:
    """Convert models, enums, and datetimes into plain YAML/table values."""
    if isinstance(data, datetime):
        return data.isoformat()
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {k: _to_plain(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_to_plain(v) for v in data]
    if hasattr(data, "to_dict"):
        return _to_plain(data.to_dict())
    return data
