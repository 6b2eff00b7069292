#!/usr/bin/env python3
"""
Tests for logging configuration and filters.
"""

import logging
import logging.config

import pytest

from nowbridge.logging_config import (
    REDACTED,
    AccessLogFilter,
    SensitiveDataFilter,
    get_logging_config,
    redact,
)


def make_record(msg, args=(), name="nowbridge.client"):
    return logging.LogRecord(name, logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.parametrize(
    "message,leaked",
    [
        ("Authorization: Basic YWRtaW46c2VjcmV0", "YWRtaW46c2VjcmV0"),
        ("sent Bearer abc.def.ghi", "abc.def.ghi"),
        ("password=hunter2 user=admin", "hunter2"),
        ("token: 'xyz987'", "xyz987"),
        ("api_key=k-123", "k-123"),
    ],
)
def test_redact_masks_credentials(message, leaked):
    cleaned = redact(message)

    assert leaked not in cleaned
    assert REDACTED in cleaned


def test_redact_leaves_plain_messages():
    message = "GET incident succeeded (12ms)"

    assert redact(message) == message


def test_sensitive_filter_rewrites_formatted_message():
    record = make_record("headers=%s", ({"Authorization": "Basic YWRtaW46c2VjcmV0"},))

    assert SensitiveDataFilter().filter(record) is True
    assert "YWRtaW46c2VjcmV0" not in record.getMessage()
    assert record.args == ()


def test_sensitive_filter_keeps_args_when_clean():
    record = make_record("took %dms", (12,))

    SensitiveDataFilter().filter(record)

    assert record.getMessage() == "took 12ms"


def test_access_filter_drops_health_checks():
    access_filter = AccessLogFilter()

    health = make_record('127.0.0.1:5000 - "GET /health HTTP/1.1" 200', name="uvicorn.access")
    other = make_record('127.0.0.1:5000 - "POST /scripts/execute HTTP/1.1" 200', name="uvicorn.access")
    app = make_record("GET /health probe", name="nowbridge.main")

    assert access_filter.filter(health) is False
    assert access_filter.filter(other) is True
    assert access_filter.filter(app) is True


def test_logging_config_shape():
    config = get_logging_config("DEBUG")

    assert config["version"] == 1
    assert config["loggers"]["nowbridge"]["level"] == "DEBUG"
    assert "sensitive_data" in config["handlers"]["default"]["filters"]
    assert "access_log" in config["handlers"]["access"]["filters"]
    assert config["loggers"]["uvicorn.access"]["handlers"] == ["access"]


def test_logging_config_is_accepted_by_dictconfig():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    logger = logging.getLogger("nowbridge")

    try:
        logging.config.dictConfig(get_logging_config("INFO"))

        assert logger.level == logging.INFO
        assert logger.propagate is False
        assert any(
            isinstance(f, SensitiveDataFilter) for h in logger.handlers for f in h.filters
        )
    finally:
        # Hand logging back to pytest capture for later tests
        logger.propagate = True
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
