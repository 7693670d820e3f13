"""Tests for structured logging."""

import asyncio
import json
import logging

import pytest

from brain.logging_config import QUIET_LOGGERS, JSONFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord(
        name="brain.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Tool %s done",
        args=("calculator",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_logging():
    """Undo setup_logging() on the root and library loggers."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    quiet_levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, quiet_level in quiet_levels.items():
        logging.getLogger(name).setLevel(quiet_level)


class TestJSONFormatter:
    def test_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "brain.test"
        assert data["message"] == "Tool calculator done"
        assert data["line"] == 10
        assert "task" not in data

    def test_context_with_non_json_values(self):
        record = make_record(context={"correlation_id": "tool-1", "args": {"path": object}})

        data = json.loads(JSONFormatter().format(record))

        assert data["context"]["correlation_id"] == "tool-1"
        assert isinstance(data["context"]["args"]["path"], str)

    async def test_task_name_inside_task(self):
        async def emit():
            return JSONFormatter().format(make_record())

        line = await asyncio.create_task(emit(), name="knowledge.query")

        assert json.loads(line)["task"] == "knowledge.query"


class TestSetupLogging:
    def test_writes_json_to_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging("debug", str(log_file), console=False)

        logging.getLogger("brain.test").debug("hello", extra={"context": {"a": 1}})
        for handler in logging.getLogger().handlers:
            handler.flush()

        [line] = [l for l in log_file.read_text(encoding="utf-8").splitlines() if "hello" in l]
        assert json.loads(line)["context"] == {"a": 1}
        assert logging.getLogger().level == logging.DEBUG

    def test_library_loggers_quieted(self, tmp_path, restore_logging):
        setup_logging("info", str(tmp_path / "app.log"), console=False)

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
