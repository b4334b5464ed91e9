# tests/integration/logging/test_int_logging_subsystem.py - v2
"""Integration tests for the logging subsystem.

Covers: logging/logger.py, logging/handlers.py, logging/context.py, and the
context the facade attaches to records emitted by the stores.
"""
from __future__ import annotations

import json
import logging

import pytest

from promptcache.api.facade import PromptCache
from promptcache.logging.context import get_context
from promptcache.logging.logger import ROOT_LOGGER, setup_logging


@pytest.fixture
def log_file(tmp_path):
    root = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(root.handlers), root.level
    path = tmp_path / "logs" / "promptcache.log"
    setup_logging(level="INFO", log_format="json", log_file=path)
    yield path
    for h in root.handlers:
        h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _records(path) -> list[dict]:
    for h in logging.getLogger(ROOT_LOGGER).handlers:
        h.flush()
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestFacadeLogging:
    def test_init_logged(self, log_file, settings, free):
        PromptCache(entitlement=free, settings=settings).init()
        records = _records(log_file)
        assert any("Initialized JSON cache" in r["message"] for r in records)

    def test_store_warning_carries_context(self, log_file, free_cache):
        (free_cache.path / "index.json").write_text("{broken", encoding="utf-8")
        assert free_cache.get("anything") is None

        warnings = [r for r in _records(log_file) if r["level"] == "WARNING"]
        assert warnings
        ctx = warnings[0]["context"]
        assert ctx["backend"] == "json"
        assert ctx["operation"] == "get"
        assert ctx["cache_path"] == str(free_cache.path)

    def test_operation_reset_after_call(self, log_file, free_cache):
        free_cache.list()
        assert get_context().operation is None

    def test_clear_logged_with_count(self, log_file, free_cache):
        free_cache.set("p", "r")
        free_cache.clear()
        messages = [r["message"] for r in _records(log_file)]
        assert any(m.startswith("Cleared 1 entries") for m in messages)
