"""
Tests for logging setup.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Generator

import pytest

from breachwatch.config.schema import LoggingConfig
from breachwatch.logs import ROOT_LOGGER, JSONFormatter, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """Undo handler and level changes made by configure_logging."""
    root = logging.getLogger(ROOT_LOGGER)
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _record(msg: str = "Created incident abc", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="breachwatch.incidents.manager",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for structured log lines."""

    def test_fields(self) -> None:
        data = json.loads(JSONFormatter().format(_record()))

        assert set(data) == {"ts", "level", "logger", "msg"}
        assert data["level"] == "INFO"
        assert data["logger"] == "breachwatch.incidents.manager"
        assert data["msg"] == "Created incident abc"
        assert data["ts"].endswith("+00:00")

    def test_request_id(self) -> None:
        data = json.loads(JSONFormatter().format(_record(request_id="req-42")))
        assert data["request_id"] == "req-42"

    def test_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self) -> None:
        root = configure_logging(LoggingConfig(level="warning"))

        assert root.name == ROOT_LOGGER
        assert root.level == logging.WARNING

    def test_replaces_previous_handler(self) -> None:
        root = logging.getLogger(ROOT_LOGGER)
        before = len(root.handlers)

        configure_logging(LoggingConfig())
        configure_logging(LoggingConfig(json_format=True))

        assert len(root.handlers) == before + 1
        assert isinstance(root.handlers[-1].formatter, JSONFormatter)

    def test_writes_json_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "breachwatch.log"
        configure_logging(
            LoggingConfig(level="INFO", output_path=str(log_file), json_format=True)
        )

        logging.getLogger("breachwatch.storage").info("Opened database")
        logging.getLogger("breachwatch.storage").debug("Hidden")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["msg"] == "Opened database"
