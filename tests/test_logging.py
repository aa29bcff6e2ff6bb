"""Tests for log formatting and setup."""

import json
import logging

import pytest

from volcano_planner.config import LoggingConfig
from volcano_planner.utils.logging import (
    ROOT_LOGGER,
    StandardFormatter,
    StructuredFormatter,
    configure_logging,
    get_contextual_logger,
)


def _record(**context):
    record = logging.LogRecord("volcano_planner.events", logging.DEBUG, __file__, 1, "fired", None, None)
    for key, value in context.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_standard_formatter_appends_context():
    """Test that call context is shown after the message."""
    line = StandardFormatter().format(_record(call_id=7, rule="FilterMergeRule"))
    assert line.endswith("fired [call_id=7 rule=FilterMergeRule]")


def test_standard_formatter_without_context():
    """Test that records with no context are left plain."""
    assert StandardFormatter().format(_record()).endswith("volcano_planner.events: fired")


def test_structured_formatter_emits_json():
    """Test that context fields become top-level JSON keys."""
    entry = json.loads(StructuredFormatter().format(_record(call_id=3, rule="JoinCommuteRule")))
    assert entry["message"] == "fired"
    assert entry["level"] == "DEBUG"
    assert entry["call_id"] == 3
    assert entry["rule"] == "JoinCommuteRule"


def test_contextual_logger_attaches_fields(caplog):
    """Test that the adapter puts its context on every record."""
    adapter = get_contextual_logger("tests.context", {"call_id": 1, "rule": "R"})
    with caplog.at_level(logging.INFO, logger="tests.context"):
        adapter.info("hello")
    record = caplog.records[-1]
    assert record.call_id == 1
    assert record.rule == "R"


def test_configure_logging_replaces_handlers(package_logger, tmp_path):
    """Test that reconfiguring does not stack handlers."""
    log_file = tmp_path / "planner.log"
    configure_logging(LoggingConfig(level="DEBUG", structured=True, log_file=str(log_file)))
    configure_logging(LoggingConfig(level="WARNING"))

    assert len(package_logger.handlers) == 1
    assert package_logger.level == logging.WARNING
    assert package_logger.propagate is False
    assert isinstance(package_logger.handlers[0].formatter, StandardFormatter)
