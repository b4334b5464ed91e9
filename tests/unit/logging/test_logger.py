# tests/unit/logging/test_logger.py - v2
"""Tests for logging/logger.py: logger factory and formatters."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from promptcache.logging.context import clear_context, set_cache_context, set_operation_context
from promptcache.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
)


def _record(msg: str = "Hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_cache_context("/c", "json")
        set_operation_context("get")
        parsed = json.loads(JsonFormatter().format(_record("test msg")))
        assert parsed["context"] == {"cache_path": "/c", "backend": "json", "operation": "get"}

    def test_format_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTextFormatter:
    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_context_shown(self):
        set_cache_context("/c", "sqlite")
        set_operation_context("clear")
        output = TextFormatter().format(_record())
        assert "[sqlite]" in output
        assert "(clear)" in output


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("test_module")
        assert logger.name == "promptcache.test_module"


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore(self):
        root = logging.getLogger(ROOT_LOGGER)
        level, handlers = root.level, list(root.handlers)
        yield
        for h in root.handlers:
            h.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_setup_json(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text(self):
        setup_logging(level="INFO", log_format="text")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.INFO
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1

    def test_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "cache.log"
        setup_logging(level="INFO", log_file=log_file)
        get_logger("t").info("written")
        for h in logging.getLogger(ROOT_LOGGER).handlers:
            h.flush()
        assert "written" in log_file.read_text(encoding="utf-8")
