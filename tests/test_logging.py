"""Unit tests for the logging configuration module.

This test module validates the structured logging configuration, context
binding, run ID management and verbosity-dependent progress logging.
"""

import json
import logging

import pytest
import structlog

from hookrunner.log_config import (
    bind_context,
    bind_run_id,
    clear_context,
    configure_logging,
    get_logger,
    log_progress,
    unbind_context,
    unbind_run_id,
)


class TestLoggingConfiguration:
    """Test cases for logging configuration."""

    def test_configure_logging_info_level(self):
        """Test logging configuration with INFO level."""
        configure_logging(level="INFO", json_logs=True)
        logger = get_logger("test")
        assert logger is not None
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_lowercase_level(self):
        """Test that level names are case-insensitive."""
        configure_logging(level="debug", json_logs=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_logging_invalid_level(self):
        """Test logging configuration with invalid level."""
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="INVALID", json_logs=True)

    def test_configure_logging_console_renderer(self):
        """Test logging configuration with console renderer."""
        configure_logging(level="INFO", json_logs=False)
        logger = get_logger("test")
        assert logger is not None

    def test_reconfigure_changes_level(self):
        """Test that a second call moves the level even when handlers exist."""
        configure_logging(level="WARNING", json_logs=True)
        configure_logging(level="ERROR", json_logs=True)
        assert logging.getLogger().level == logging.ERROR

    def test_get_logger_without_name(self):
        """Test getting a logger without a name."""
        configure_logging(level="INFO", json_logs=True)
        assert get_logger() is not None


class TestContextBinding:
    """Test cases for context binding functionality."""

    def setup_method(self):
        """Set up test environment before each test."""
        configure_logging(level="INFO", json_logs=True)
        clear_context()

    def teardown_method(self):
        """Clean up after each test."""
        clear_context()

    def test_bind_run_id(self, caplog):
        """Test binding a run ID to the logging context."""
        caplog.set_level(logging.INFO)
        logger = get_logger("test")

        bind_run_id("run-abc123")
        logger.info("test_event")

        assert len(caplog.records) == 1
        payload = json.loads(caplog.records[0].getMessage())
        assert payload["run_id"] == "run-abc123"
        assert payload["event"] == "test_event"

    def test_unbind_run_id(self, caplog):
        """Test unbinding the run ID from the logging context."""
        caplog.set_level(logging.INFO)
        logger = get_logger("test")

        bind_run_id("run-abc123")
        logger.info("with_run_id")
        unbind_run_id()
        logger.info("without_run_id")

        assert len(caplog.records) == 2
        assert "run-abc123" in caplog.records[0].getMessage()
        assert "run-abc123" not in caplog.records[1].getMessage()

    def test_bind_context_multiple_variables(self, caplog):
        """Test binding multiple context variables."""
        caplog.set_level(logging.INFO)
        logger = get_logger("test")

        bind_context(task_id="guard", tier="critical")
        logger.info("task_started")

        payload = json.loads(caplog.records[0].getMessage())
        assert payload["task_id"] == "guard"
        assert payload["tier"] == "critical"

    def test_unbind_context_specific_keys(self, caplog):
        """Test unbinding specific context variables."""
        caplog.set_level(logging.INFO)
        logger = get_logger("test")

        bind_context(task_id="guard", tier="critical")
        unbind_context("task_id")
        logger.info("without_task_id")

        payload = json.loads(caplog.records[0].getMessage())
        assert "task_id" not in payload
        assert payload["tier"] == "critical"

    def test_clear_context(self, caplog):
        """Test clearing all context variables."""
        caplog.set_level(logging.INFO)
        logger = get_logger("test")

        bind_context(task_id="guard", tier="critical")
        clear_context()
        logger.info("without_context")

        payload = json.loads(caplog.records[0].getMessage())
        assert "task_id" not in payload
        assert "tier" not in payload


class TestLogProgress:
    """Test cases for verbosity-dependent progress logging."""

    def setup_method(self):
        """Set up test environment before each test."""
        configure_logging(level="DEBUG", json_logs=True)
        clear_context()

    def test_verbose_logs_at_info(self, caplog):
        """Test that verbose progress is emitted at INFO."""
        caplog.set_level(logging.DEBUG)
        log_progress(get_logger("test"), True, "tier_execution_started", tier="high")

        assert caplog.records[0].levelno == logging.INFO
        assert "tier_execution_started" in caplog.records[0].getMessage()

    def test_quiet_logs_at_debug(self, caplog):
        """Test that non-verbose progress is emitted at DEBUG."""
        caplog.set_level(logging.DEBUG)
        log_progress(get_logger("test"), False, "tier_execution_started", tier="high")

        assert caplog.records[0].levelno == logging.DEBUG

    def test_quiet_progress_hidden_at_info(self, caplog):
        """Test that non-verbose progress is filtered at INFO level."""
        caplog.set_level(logging.INFO)
        log_progress(get_logger("test"), False, "tier_execution_started")

        assert caplog.records == []


class TestStructuredLogging:
    """Test cases for structured logging output."""

    def setup_method(self):
        """Set up test environment before each test."""
        configure_logging(level="INFO", json_logs=True)
        clear_context()

    def test_json_output_format(self, caplog):
        """Test that logs are rendered as JSON with level and timestamp."""
        caplog.set_level(logging.INFO)
        get_logger("test").info("test_event", key1="value1", key2=42)

        payload = json.loads(caplog.records[0].getMessage())
        assert payload["key1"] == "value1"
        assert payload["key2"] == 42
        assert payload["level"] == "info"
        assert "timestamp" in payload

    def test_log_with_exception(self, caplog):
        """Test logging with exception information."""
        caplog.set_level(logging.ERROR)
        logger = get_logger("test")

        def _raise_test_error():
            msg = "Test exception"
            raise ValueError(msg)

        try:
            _raise_test_error()
        except ValueError:
            logger.exception("error_occurred", operation="test")

        assert len(caplog.records) == 1
        assert "error_occurred" in caplog.records[0].getMessage()
        assert "Test exception" in caplog.records[0].getMessage()

    def test_logger_is_structlog_proxy(self):
        """Test that module loggers come from structlog."""
        logger = get_logger(__name__)
        assert hasattr(logger, "bind")
        assert isinstance(structlog.get_config()["processors"], list)
