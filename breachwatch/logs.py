"""
Logging setup for BreachWatch.

All BreachWatch modules log through named loggers under "breachwatch".
configure_logging attaches a single handler to that root according to a
LoggingConfig; library users who never call it keep full control.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from breachwatch.config.schema import LoggingConfig

ROOT_LOGGER = "breachwatch"

# Marks the handler installed by configure_logging so it can be replaced.
_HANDLER_ATTR = "_breachwatch_handler"


class JSONFormatter(logging.Formatter):
    """Formats each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            log_obj["request_id"] = request_id
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """
    Configure the "breachwatch" logger from configuration.

    Calling this again replaces the handler installed by the previous call.

    Args:
        config: Logging configuration section.

    Returns:
        The configured "breachwatch" logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(config.level.upper())

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    handler: logging.Handler
    if config.output_path:
        handler = logging.FileHandler(config.output_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    if config.json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))

    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)
    return root
