"""
Tests for logging utilities.
"""

import json
import logging
from datetime import datetime
from unittest.mock import Mock, patch

from competitor_monitor.utils.logging import (
    ROOT_LOGGER_NAME,
    ComponentLogger,
    LoggingManager,
    get_logger,
    get_logging_stats,
    setup_logging,
)


class TestComponentLogger:
    """Test cases for ComponentLogger."""

    def test_component_logger_initialization(self):
        logger = ComponentLogger("crawl.worker", {"worker": "w1"})

        assert logger.component_name == "crawl.worker"
        assert logger.extra_context == {"worker": "w1"}
        assert logger.logger.name == "competitor_monitor.crawl.worker"

    def test_format_message(self):
        logger = ComponentLogger("job.queue", {"context_key": "context_value"})

        formatted = logger._format_message("Claimed job", {"job_id": 3})

        assert formatted["component"] == "job.queue"
        assert formatted["message"] == "Claimed job"
        assert formatted["context_key"] == "context_value"
        assert formatted["job_id"] == 3
        assert "timestamp" in formatted

    def test_log_methods(self):
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger
            logger = ComponentLogger("scheduler")

            logger.debug("Debug message", {"key": "value"})
            logger.info("Info message")
            logger.warning("Warning message")
            logger.error("Error message", exc_info=True)
            logger.critical("Critical message")

        mock_logger.debug.assert_called_once()
        mock_logger.info.assert_called_once()
        mock_logger.warning.assert_called_once()
        mock_logger.critical.assert_called_once()
        assert mock_logger.error.call_args.kwargs["exc_info"] is True
        assert json.loads(mock_logger.error.call_args.args[0])["exception"] is True

    def test_structured_logging_format(self):
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger
            logger = ComponentLogger("notification.fanout", {"context": "test"})

            logger.info(
                "Alert email queued",
                {"alert_id": 5, "scheduled_for": datetime(2024, 1, 1, 13, 0)},
            )

        parsed = json.loads(mock_logger.info.call_args.args[0])
        assert parsed["component"] == "notification.fanout"
        assert parsed["message"] == "Alert email queued"
        assert parsed["context"] == "test"
        assert parsed["alert_id"] == 5
        assert parsed["scheduled_for"] == "2024-01-01 13:00:00"


class TestLoggingManager:
    """Test cases for LoggingManager."""

    def test_creates_log_files(self, tmp_path):
        manager = LoggingManager(log_dir=str(tmp_path / "logs"), log_level="DEBUG")

        assert manager.log_level == logging.DEBUG
        assert manager.log_dir.exists()

        ComponentLogger("change.detector").error("Alert insert failed")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()
        for handler in logging.getLogger(f"{ROOT_LOGGER_NAME}.change.detector").handlers:
            handler.flush()

        log_names = {path.name for path in manager.log_dir.glob("*.log")}
        assert "competitor_monitor.log" in log_names
        assert "errors.log" in log_names
        assert "change_detector.log" in log_names
        assert "Alert insert failed" in (manager.log_dir / "errors.log").read_text()

    def test_setup_is_idempotent(self, tmp_path):
        LoggingManager(log_dir=str(tmp_path))
        LoggingManager(log_dir=str(tmp_path))

        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 3
        assert len(logging.getLogger(f"{ROOT_LOGGER_NAME}.job.queue").handlers) == 1

    def test_get_component_logger_is_cached(self, tmp_path):
        manager = LoggingManager(log_dir=str(tmp_path))

        logger1 = manager.get_component_logger("crawl.worker")
        logger2 = manager.get_component_logger("crawl.worker")
        logger3 = manager.get_component_logger("crawl.worker", {"worker": "w2"})

        assert logger1 is logger2
        assert logger1 is not logger3

    def test_set_log_level_keeps_error_log_at_error(self, tmp_path):
        manager = LoggingManager(log_dir=str(tmp_path), log_level="INFO")

        manager.set_log_level("DEBUG")

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        assert root_logger.level == logging.DEBUG
        error_handlers = [
            handler
            for handler in root_logger.handlers
            if str(getattr(handler, "baseFilename", "")).endswith("errors.log")
        ]
        assert error_handlers[0].level == logging.ERROR

    def test_get_log_stats(self, tmp_path):
        manager = LoggingManager(log_dir=str(tmp_path), log_level="WARNING")
        manager.get_component_logger("orchestrator")

        stats = manager.get_log_stats()

        assert stats["log_directory"] == str(tmp_path)
        assert stats["log_level"] == "WARNING"
        assert stats["component_loggers"] == 1
        assert any(f["name"] == "errors.log" for f in stats["log_files"])


class TestGlobalLogging:
    """Test cases for module-level helpers."""

    def test_setup_logging_and_get_logger(self, tmp_path):
        manager = setup_logging(log_dir=str(tmp_path), log_level="INFO")

        logger = get_logger("rate_limiter")

        assert isinstance(logger, ComponentLogger)
        assert manager.get_component_logger("rate_limiter") is logger
        assert get_logging_stats()["log_directory"] == str(tmp_path)
