"""Tests for Courier structured logging."""

import logging

from courier.logging import (
    REDACTED,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    redact_secrets,
    unbind_context,
)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_defaults(self):
        """Should configure with INFO level and JSON format by default."""
        configure_logging()
        logger = get_logger("test")
        logger.info("test message")

    def test_configure_with_text_format(self):
        """Should accept text format for development."""
        configure_logging(level="DEBUG", format="text")
        logger = get_logger("test")
        logger.debug("text format message")

    def test_configure_multiple_times(self):
        configure_logging(level="INFO")
        configure_logging(level="DEBUG")
        get_logger("test").info("after reconfigure")

    def test_http_client_logging_held_at_warning(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_unknown_level_falls_back(self):
        configure_logging(level="LOUD")
        get_logger("test").info("still works")


class TestRedaction:
    """Secrets never reach rendered log lines."""

    def test_sensitive_keys_masked(self):
        event = {
            "event": "Webhook connected",
            "webhook_secret": "whsec_123",
            "Authorization": "Bearer abc",
            "provider": "zapier",
        }

        result = redact_secrets(None, "info", event)

        assert result["webhook_secret"] == REDACTED
        assert result["Authorization"] == REDACTED
        assert result["provider"] == "zapier"
        assert result["event"] == "Webhook connected"

    def test_logging_a_secret_does_not_raise(self):
        configure_logging()
        get_logger("test").info("connected", secret="do-not-print")


class TestContextBinding:
    """Tests for context variable binding."""

    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_bind_and_unbind(self):
        bind_context(organization_id="org_1", provider="zapier")
        unbind_context("provider")
        get_logger("test").info("partial unbind")

    def test_log_with_exception(self):
        configure_logging()
        logger = get_logger("test")
        try:
            raise ValueError("test error")
        except ValueError:
            logger.exception("caught an error")
