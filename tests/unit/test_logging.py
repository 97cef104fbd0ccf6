"""
Unit tests for structured logging utilities.
"""

import json
import logging
from io import StringIO

import pytest

from explicit_return.utils.logging import (
    JSONFormatter,
    LogContext,
    get_logger,
    log_annotation_added,
    log_error_with_context,
    log_phase_transition,
    setup_logging,
)


def _capture(logger, level=logging.DEBUG):
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.logger.addHandler(handler)
    logger.logger.setLevel(level)
    return stream


def test_json_formatter():
    """Test JSON formatter produces valid JSON output."""
    formatter = JSONFormatter()

    logger = logging.getLogger("test_json_formatter")
    logger.setLevel(logging.INFO)

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.info("Test message", extra={"file_name": "widget.ts", "phase": "check"})

    log_data = json.loads(stream.getvalue())

    assert "timestamp" in log_data
    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test_json_formatter"
    assert log_data["message"] == "Test message"
    assert log_data["file_name"] == "widget.ts"
    assert log_data["phase"] == "check"
    assert "source" in log_data


def test_json_formatter_extra_fields_go_to_context():
    """Test unknown extra fields are grouped under context."""
    logger = logging.getLogger("test_json_formatter_context")
    logger.setLevel(logging.INFO)
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    logger.info("Counted", extra={"annotations": 3})

    log_data = json.loads(stream.getvalue())
    assert log_data["context"]["annotations"] == 3


def test_get_logger_with_context():
    """Test getting logger with context."""
    logger = get_logger("test_module", file_name="widget.ts", phase="rewrite")

    assert logger.extra["file_name"] == "widget.ts"
    assert logger.extra["phase"] == "rewrite"


def test_with_context_does_not_mutate_parent():
    """Test with_context returns a new adapter with merged context."""
    logger = get_logger("test_module", file_name="widget.ts")
    child = logger.with_context(phase="serialize")

    assert child.extra == {"file_name": "widget.ts", "phase": "serialize"}
    assert logger.extra == {"file_name": "widget.ts"}


def test_log_context_restores_extra():
    """Test LogContext adds fields temporarily."""
    logger = get_logger("test_log_context")
    stream = _capture(logger, logging.INFO)

    with LogContext(logger, file_name="widget.ts", phase="rewrite"):
        logger.info("Inside")
    assert logger.extra == {}

    log_data = json.loads(stream.getvalue())
    assert log_data["file_name"] == "widget.ts"
    assert log_data["phase"] == "rewrite"


def test_log_phase_transition():
    """Test phase transition logging."""
    logger = get_logger("test_phase_transition")
    stream = _capture(logger)

    log_phase_transition(logger, file_name="widget.ts", phase="check", status="started")

    log_data = json.loads(stream.getvalue())
    assert log_data["level"] == "DEBUG"
    assert log_data["file_name"] == "widget.ts"
    assert log_data["phase"] == "check"
    assert log_data["context"]["status"] == "started"


def test_log_annotation_added():
    """Test annotation logging carries the node kind and type text."""
    logger = get_logger("test_annotation_added")
    stream = _capture(logger)

    log_annotation_added(logger, node_kind="method_declaration", name="add", type_text="number")

    log_data = json.loads(stream.getvalue())
    assert log_data["message"] == "Annotated add with : number"
    assert log_data["node_kind"] == "method_declaration"
    assert log_data["context"]["return_type"] == "number"


def test_log_annotation_added_anonymous():
    """Test anonymous functions are logged with a placeholder name."""
    logger = get_logger("test_annotation_anonymous")
    stream = _capture(logger)

    log_annotation_added(logger, node_kind="arrow_function", name=None, type_text="void")

    log_data = json.loads(stream.getvalue())
    assert "<anonymous>" in log_data["message"]


def test_log_error_with_context():
    """Test error logging includes the stack trace."""
    logger = get_logger("test_error_context")
    stream = _capture(logger, logging.ERROR)

    try:
        raise ValueError("bad type text")
    except ValueError as e:
        log_error_with_context(logger, "Failed to infer types", e, file_name="widget.ts")

    log_data = json.loads(stream.getvalue())
    assert log_data["level"] == "ERROR"
    assert log_data["file_name"] == "widget.ts"
    assert log_data["error"]["type"] == "ValueError"
    assert log_data["error"]["message"] == "bad type text"
    assert "Traceback" in log_data["error"]["stack_trace"]


def test_setup_logging_configures_root():
    """Test setup_logging installs a single JSON handler on the root logger."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    try:
        setup_logging("WARNING")

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
