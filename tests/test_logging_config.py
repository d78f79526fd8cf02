"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys

from lifter.logging_config import JSONFormatter, get_logger, log_context, setup_logging


def _record(msg="hello %s", args=("world",), level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="test", level=level, pathname="test.py",
        lineno=1, msg=msg, args=args, exc_info=exc_info
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_outputs_valid_json():
    parsed = json.loads(JSONFormatter().format(_record()))
    assert parsed["message"] == "hello world"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test"
    assert "timestamp" in parsed
    assert "context" not in parsed


def test_json_formatter_includes_exception():
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()
    parsed = json.loads(JSONFormatter().format(_record(msg="fail", args=(), level=logging.ERROR, exc_info=exc_info)))
    assert parsed["exception"]["type"] == "ValueError"
    assert parsed["exception"]["message"] == "test error"


def test_log_context_builds_extra():
    assert log_context(program_id="p1", cycle_id="c1") == {
        "extra": {"ctx_program_id": "p1", "ctx_cycle_id": "c1"}
    }


def test_json_formatter_includes_context_fields():
    extra = log_context(program_id="p1", reference_date="2024-01-01")["extra"]
    parsed = json.loads(JSONFormatter().format(_record(**extra)))
    assert parsed["context"] == {"program_id": "p1", "reference_date": "2024-01-01"}


def test_get_logger_returns_named_logger():
    log = get_logger("lifter.services")
    assert log.name == "lifter.services"
    assert isinstance(log, logging.Logger)


def test_setup_logging_idempotent():
    root = logging.getLogger()
    initial_count = len(root.handlers)
    setup_logging()
    setup_logging()
    # Should not add duplicate handlers
    assert len(root.handlers) <= initial_count + 1
