"""
Unit tests for logging helpers.
"""

import os
from unittest.mock import Mock, patch

import structlog

from reddit_graph.utils.logger import get_logger, log_request, setup_logging


class TestSetupLogging:
    """Test structlog configuration."""

    @patch.dict(os.environ, {"ENVIRONMENT": "production"})
    def test_json_renderer_in_production(self):
        setup_logging("DEBUG")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    @patch.dict(os.environ, {"ENVIRONMENT": "development"})
    def test_console_renderer_in_development(self):
        setup_logging("INFO")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_get_logger(self):
        logger = get_logger("reddit_graph.tests")

        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")


class TestLogRequest:
    """Test per-request debug records."""

    def test_completed_request(self):
        logger = Mock()

        log_request(logger, "GET", "r/python/hot", 200, 12.3456, ratelimit_remaining=598)

        logger.debug.assert_called_once_with(
            "request_completed",
            method="GET",
            url="r/python/hot",
            status_code=200,
            duration_ms=12.35,
            error=None,
            ratelimit_remaining=598,
        )

    def test_failed_request(self):
        logger = Mock()

        log_request(logger, "POST", "api/comment", None, 30000, error="timeout")

        assert logger.debug.call_args.args[0] == "request_failed"
        assert logger.debug.call_args.kwargs["error"] == "timeout"
