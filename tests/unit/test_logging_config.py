"""Unit tests for logging configuration and error helpers."""

import logging

import pytest

from patrimony.lib.config import load_settings
from patrimony.lib.errors import (
    HoldingsFileError,
    QuoteFailure,
    QuoteNotFoundError,
    QuoteRateLimitError,
    format_error_message,
    get_error_color,
)
from patrimony.lib.logging_config import APIKeyFilter, get_logger


def make_record(msg, args=None):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.unit
class TestAPIKeyFilter:
    """Test suite for credential redaction."""

    def test_redacts_query_token(self):
        record = make_record("GET https://finnhub.io/api/v1/quote?symbol=AAPL&token=abc123")
        APIKeyFilter().filter(record)

        assert "abc123" not in record.msg
        assert "token=[REDACTED]" in record.msg
        assert "symbol=AAPL" in record.msg

    def test_redacts_percent_encoded_token(self):
        record = make_record(
            "https://corsproxy.io/?"
            "https%3A%2F%2Ffinnhub.io%3Fq%3Dx%26token%3Dabc123"
        )
        APIKeyFilter().filter(record)

        assert "abc123" not in record.msg

    def test_redacts_args(self):
        record = make_record("payload %s %s", ({"token": "abc123"}, "Bearer xyz.789"))
        APIKeyFilter().filter(record)

        assert record.args[0] == {"token": "[REDACTED]"}
        assert record.args[1] == "Bearer [REDACTED]"

    def test_get_logger_installs_filter_once(self):
        logger = get_logger("patrimony.test")
        get_logger("patrimony.test")

        assert sum(isinstance(f, APIKeyFilter) for f in logger.filters) == 1


@pytest.mark.unit
class TestErrorsAndSettings:
    """Test suite for error formatting and settings loading."""

    def test_quote_error_carries_reason(self):
        error = QuoteNotFoundError("yahoo", "no chart price for XYZ")

        assert error.reason == QuoteFailure.NOT_FOUND
        assert error.message.startswith("yahoo: not_found")
        assert "XYZ" in error.message

    def test_error_colors(self):
        assert get_error_color(QuoteRateLimitError("finnhub")) == "yellow"
        assert get_error_color(HoldingsFileError("x.json")) == "red"
        assert format_error_message(ValueError("boom")) == "ValueError: boom"

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("FINNHUB_API_KEY", " key ")
        monkeypatch.setenv("PATRIMONY_CURRENCY", "usd")

        settings = load_settings()

        assert settings.finnhub_api_key == "key"
        assert settings.has_finnhub_key
        assert settings.reporting_currency == "USD"

    def test_explicit_settings_override_environment(self, monkeypatch):
        monkeypatch.setenv("FINNHUB_API_KEY", "env-key")

        settings = load_settings(finnhub_api_key="", reporting_currency="gbp")

        assert not settings.has_finnhub_key
        assert settings.reporting_currency == "GBP"
