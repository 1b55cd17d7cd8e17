"""
Unit tests for compendium_index/ops/telemetry.py
"""
import importlib
import logging

import compendium_index.index.builder  # noqa: F401  (module-level loggers)
from compendium_index.ops import telemetry
from compendium_index.ops.telemetry import get_logger, timed


def test_import_and_logging_leave_host_handlers_alone():
    """Library use never replaces the root logger's handlers or level."""
    root = logging.getLogger()
    handler = logging.NullHandler()
    root.addHandler(handler)
    level = root.level
    try:
        importlib.reload(telemetry)
        log = get_logger("compendium_index.test")
        log.warning("host_owned_logging", check=True)

        assert handler in root.handlers
        assert root.level == level
    finally:
        root.removeHandler(handler)


def test_log_records_reach_stdlib(caplog):
    with caplog.at_level(logging.INFO):
        get_logger("compendium_index.test").info("index_loaded", profiles=3)

    assert any("index_loaded" in r.getMessage() for r in caplog.records)


def test_timed_reports_duration(caplog):
    log = get_logger("compendium_index.test")
    with caplog.at_level(logging.INFO):
        with timed(log, "fallback_search_complete", query="orc") as fields:
            fields["results"] = 1

    assert fields["results"] == 1
    assert fields["duration_ms"] >= 0
    assert any("fallback_search_complete" in r.getMessage() for r in caplog.records)
