"""Tests for structured logging setup."""

from __future__ import annotations

import logging

from quantsim.common.logging import (
    StructuredFormatter,
    _redact_secrets,
    configure_log_level,
    get_logger,
)


class TestGetLogger:
    """Test logger creation and configuration."""

    def test_same_tag_returns_same_logger(self):
        """Calling get_logger twice with same tag returns the same instance."""
        assert get_logger("MODEL") is get_logger("MODEL")

    def test_different_tags_return_different_loggers(self):
        """Different tags produce different logger instances."""
        assert get_logger("DATA") is not get_logger("STRATEGY")

    def test_logger_is_namespaced(self):
        """Underlying stdlib logger lives under the quantsim namespace."""
        assert get_logger("BACKTEST").logger.name == "quantsim.backtest"

    def test_log_output_contains_tag_level_and_message(self, capfd):
        """A log line carries the module tag, level and message."""
        get_logger("TEST").warning("Drawdown exceeds limit")
        out = capfd.readouterr().out
        assert "TEST" in out
        assert "WARNING" in out
        assert "Drawdown exceeds limit" in out

    def test_structured_data_in_output(self, capfd):
        """Structured data dict appears as JSON in log output."""
        get_logger("TEST").info("Backtest done", extra={"data": {"symbol": "AAPL", "trades": 7}})
        out = capfd.readouterr().out
        assert '"symbol": "AAPL"' in out
        assert '"trades": 7' in out


class TestStructuredFormatter:
    """Test the pipe-delimited line format."""

    def _record(self, msg: str, **extra) -> logging.LogRecord:
        record = logging.LogRecord("quantsim.test", logging.INFO, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_format_without_data(self):
        line = StructuredFormatter().format(self._record("hello", module_tag="DATA"))
        parts = line.split(" | ")
        assert parts[1:] == ["INFO", "DATA", "hello"]

    def test_format_with_data(self):
        line = StructuredFormatter().format(
            self._record("hello", module_tag="MODEL", data={"trees": 3})
        )
        assert line.endswith('| {"trees": 3}')

    def test_missing_tag_defaults_to_system(self):
        line = StructuredFormatter().format(self._record("hello"))
        assert " | SYSTEM | " in line

    def test_non_json_data_uses_default_str(self):
        """Dates and other objects are rendered with str()."""
        from datetime import date

        line = StructuredFormatter().format(
            self._record("x", module_tag="DATA", data={"day": date(2024, 1, 2)})
        )
        assert "2024-01-02" in line


class TestSecretRedaction:
    """Test that secrets are redacted from log output."""

    def test_redact_api_key(self):
        redacted = _redact_secrets('{"api_key": "super-secret-123"}')
        assert "super-secret-123" not in redacted
        assert "[REDACTED]" in redacted

    def test_non_secret_fields_preserved(self):
        redacted = _redact_secrets('{"symbol": "MSFT", "close": "412.5"}')
        assert "MSFT" in redacted
        assert "412.5" in redacted

    def test_secret_redaction_in_log_output(self, capfd):
        get_logger("DATA").info(
            "Fetching prices",
            extra={"data": {"access_token": "tok-abc-123", "symbol": "SPY"}},
        )
        out = capfd.readouterr().out
        assert "tok-abc-123" not in out
        assert "SPY" in out


class TestConfigureLogLevel:
    """Test runtime log level changes."""

    def test_suppresses_lower_levels(self, capfd):
        logger = get_logger("METRICS")
        try:
            configure_log_level("ERROR")
            logger.info("should not appear")
            assert "should not appear" not in capfd.readouterr().out
        finally:
            configure_log_level("DEBUG")

    def test_unknown_level_falls_back_to_info(self):
        logger = get_logger("METRICS")
        try:
            configure_log_level("chatty")
            assert logger.logger.level == logging.INFO
        finally:
            configure_log_level("DEBUG")
