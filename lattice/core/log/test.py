"""Tests for core logging module."""

import logging

import pytest

from .lib import SecretRedactingFilter, get_logger, redact_secrets, setup_logging


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


class TestLogging:
    """Test core logging API."""

    @pytest.mark.unit
    def test_get_logger(self) -> None:
        """Verify logger instance creation."""
        logger = get_logger("test")
        assert logger.name == "test"
        assert isinstance(logger, logging.Logger)

    @pytest.mark.unit
    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        logger = get_logger()
        assert logger.name == "lattice"

    @pytest.mark.unit
    def test_setup_logging_installs_redaction(self) -> None:
        """Every root handler carries the redacting filter after setup."""
        setup_logging(level="DEBUG")
        handlers = logging.getLogger().handlers
        assert handlers
        for handler in handlers:
            assert any(isinstance(f, SecretRedactingFilter) for f in handler.filters)

    @pytest.mark.unit
    def test_setup_logging_is_idempotent(self) -> None:
        """Repeated setup does not stack filters."""
        setup_logging(level=logging.INFO)
        setup_logging(level=logging.INFO)
        for handler in logging.getLogger().handlers:
            count = sum(isinstance(f, SecretRedactingFilter) for f in handler.filters)
            assert count == 1


class TestSecretRedactingFilter:
    """Tests for API key masking."""

    @pytest.mark.unit
    def test_masks_inline_key(self) -> None:
        record = _record("using key sk-abcdefghijklmnop for call")
        SecretRedactingFilter().filter(record)
        assert record.getMessage() == "using key *** for call"

    @pytest.mark.unit
    def test_masks_key_in_args(self) -> None:
        record = _record("key=%s", "sk-ant-api03-secretsecret")
        SecretRedactingFilter().filter(record)
        assert "secret" not in record.getMessage()

    @pytest.mark.unit
    def test_masks_google_key(self) -> None:
        record = _record("AIzaSyA1234567890abcdefghijk")
        SecretRedactingFilter().filter(record)
        assert record.getMessage() == "***"

    @pytest.mark.unit
    def test_leaves_plain_messages(self) -> None:
        record = _record("Generating %s", "page_home")
        assert SecretRedactingFilter().filter(record) is True
        assert record.args == ("page_home",)

    @pytest.mark.unit
    def test_redact_secrets_helper(self) -> None:
        text = "Incorrect API key provided: sk-proj-abcdef123456"
        assert redact_secrets(text) == "Incorrect API key provided: ***"
