"""Unit tests for the logging infrastructure.

Covers:
- JSONFormatter output shape
- contextvars based log context and ContextInjectingFilter
- LazyLoggerAdapter lazy evaluation and bound context
- configure_logging / setup_logging with the QueueHandler pattern
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

import pytest

from materialized_hierarchy.core.settings.logs import LoggingSettings
from materialized_hierarchy.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    LazyString,
    clear_log_context,
    complete,
    configure_logging,
    get_lazy_logger,
    get_log_context,
    lazy,
    log_context,
    set_log_context,
    setup_logging,
    shutdown,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


def make_record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("test.logger", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    """Snapshot and restore root logger handlers and level around a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    shutdown()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(False)


@pytest.fixture(autouse=True)
def empty_log_context() -> Iterator[None]:
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_basic_fields(self):
        """Test level, logger, message and UTC timestamp are present."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert data["message"] == "hello world"
        assert data["timestamp"].endswith("Z")

    def test_static_and_extra_fields(self):
        """Test static fields and record extras are copied to the output."""
        formatter = JSONFormatter(static={"service": "materialized-hierarchy"})

        data = json.loads(formatter.format(make_record(model="Task", path="Project|1")))

        assert data["service"] == "materialized-hierarchy"
        assert data["model"] == "Task"
        assert data["path"] == "Project|1"
        assert "args" not in data

    def test_exception_is_single_line(self):
        """Test exception text is kept on one output line."""
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "test.logger", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        output = formatter.format(record)

        assert "\n" not in output
        assert "ValueError: boom" in json.loads(output)["exception"]

    def test_process_info(self):
        """Test process information is opt-in."""
        data = json.loads(JSONFormatter(include_process_info=True).format(make_record()))

        assert "process_id" in data
        assert "process_id" not in json.loads(JSONFormatter().format(make_record()))


@pytest.mark.unit
class TestLogContext:
    """Test suite for contextvars log context."""

    def test_set_and_clear(self):
        """Test fields accumulate until cleared."""
        set_log_context(request_id="abc")
        set_log_context(user="u1")

        assert get_log_context() == {"request_id": "abc", "user": "u1"}

        clear_log_context()
        assert get_log_context() == {}

    def test_log_context_restores_previous(self):
        """Test the context manager restores the outer context, even on error."""
        set_log_context(request_id="abc")

        with pytest.raises(RuntimeError):
            with log_context(hierarchy_rebuild="Task|1") as ctx:
                assert ctx == {"request_id": "abc", "hierarchy_rebuild": "Task|1"}
                raise RuntimeError

        assert get_log_context() == {"request_id": "abc"}

    def test_filter_injects_without_overwriting(self):
        """Test the filter adds context fields but keeps existing attributes."""
        record = make_record(model="Task")

        with log_context(model="Project", hierarchy_rebuild="Project|1"):
            assert ContextInjectingFilter().filter(record) is True

        assert record.hierarchy_rebuild == "Project|1"
        assert record.model == "Task"


@pytest.mark.unit
class TestLazyLogger:
    """Test suite for LazyLoggerAdapter."""

    def test_callables_not_evaluated_when_disabled(self, caplog):
        """Test expensive callables are skipped below the logger level."""
        calls = []
        logger = get_lazy_logger("tests.lazy.disabled")

        with caplog.at_level(logging.INFO, logger="tests.lazy.disabled"):
            logger.debug(lambda: calls.append("msg") or "message")
            logger.debug("value %s", lambda: calls.append("arg") or "x")

        assert calls == []
        assert caplog.records == []

    def test_callables_evaluated_when_enabled(self, caplog):
        """Test callables are evaluated once the level is enabled."""
        logger = get_lazy_logger("tests.lazy.enabled")

        with caplog.at_level(logging.DEBUG, logger="tests.lazy.enabled"):
            logger.debug(lambda: "computed message")
            logger.info("path=%s", lambda: "Project|1/Task|1")

        assert [r.getMessage() for r in caplog.records] == [
            "computed message",
            "path=Project|1/Task|1",
        ]

    def test_bound_context_in_extra(self, caplog):
        """Test bound context is attached to every record, per-call extra wins."""
        logger = get_lazy_logger("tests.lazy.bound", component="updater").bind(model="Task")

        with caplog.at_level(logging.INFO, logger="tests.lazy.bound"):
            logger.info("first")
            logger.info("second", extra={"model": "Comment"})

        first, second = caplog.records
        assert (first.component, first.model) == ("updater", "Task")
        assert second.model == "Comment"

    def test_lazy_string(self):
        """Test LazyString defers evaluation until formatted."""
        calls = []
        value = lazy(lambda: calls.append(1) or "Project|1")

        assert isinstance(value, LazyString)
        assert calls == []
        assert f"{value}" == "Project|1"
        assert calls == [1]


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging and setup_logging."""

    def test_json_file_logging(self, restore_root_logger, tmp_path):
        """Test records reach the rotating file as JSON Lines with context."""
        log_file = tmp_path / "logs" / "hierarchy.jsonl"
        configure_logging(
            service_name="hierarchy-tests",
            log_level="INFO",
            json_logs=True,
            console_enabled=False,
            file_path=log_file,
        )

        with log_context(hierarchy_rebuild="Project|1"):
            logging.getLogger("materialized_hierarchy.tests").info("rebuilt %d", 3)
        complete()
        shutdown()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        data = json.loads(lines[-1])
        assert data["message"] == "rebuilt 3"
        assert data["service"] == "hierarchy-tests"
        assert data["hierarchy_rebuild"] == "Project|1"

    def test_file_level_filters_records(self, restore_root_logger, tmp_path):
        """Test the file handler honors its own level."""
        log_file = tmp_path / "hierarchy.log"
        configure_logging(
            log_level="DEBUG",
            file_level="WARNING",
            console_enabled=False,
            file_path=log_file,
        )

        logger = logging.getLogger("materialized_hierarchy.tests")
        logger.info("dropped")
        logger.warning("kept")
        complete()
        shutdown()

        text = log_file.read_text(encoding="utf-8")
        assert "kept" in text
        assert "dropped" not in text

    def test_setup_logging_from_settings(self, restore_root_logger, tmp_path):
        """Test setup_logging applies LoggingSettings once unless forced."""
        settings = LoggingSettings(
            level="WARNING", json_logs=False, console_enabled=False, file_path=tmp_path / "a.log"
        )

        setup_logging(settings, force=True)
        assert restore_root_logger.level == logging.WARNING

        setup_logging(LoggingSettings(level="DEBUG", console_enabled=False))
        assert restore_root_logger.level == logging.WARNING

        setup_logging(LoggingSettings(level="DEBUG", console_enabled=False), force=True)
        assert restore_root_logger.level == logging.DEBUG
