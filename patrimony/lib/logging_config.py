"""Logging configuration with credential redaction."""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

SENSITIVE_KEYS = {"apikey", "api_key", "token", "password", "secret", "authorization"}


class APIKeyFilter(logging.Filter):
    """Filter to redact provider credentials from log messages.

    Quote URLs carry the Finnhub token in the query string, and relayed URLs
    carry it percent-encoded inside the relay's own query string.
    """

    SENSITIVE_PATTERNS = [
        (
            re.compile(r"(apikey|api_key|token|password|secret)=([^&\s]+)", re.IGNORECASE),
            r"\1=[REDACTED]",
        ),
        (
            re.compile(r"(apikey|api_key|token)%3D([^%&\s]+)", re.IGNORECASE),
            r"\1%3D[REDACTED]",
        ),
        (re.compile(r'("(?:apikey|token)"\s*:\s*)"([^"]+)"', re.IGNORECASE), r'\1"[REDACTED]"'),
        (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), "Bearer [REDACTED]"),
        (re.compile(r"X-Finnhub-Token:\s*[^\s]+", re.IGNORECASE), "X-Finnhub-Token: [REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Redact sensitive information from a log record.

        Args:
            record: Log record to filter

        Returns:
            Always True; records are rewritten, never dropped
        """
        if isinstance(record.msg, str):
            record.msg = self._redact_text(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = self._redact_dict(record.args)
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self._redact_value(arg) for arg in record.args)

        return True

    def _redact_text(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _redact_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            k: "[REDACTED]" if k.lower() in SENSITIVE_KEYS else self._redact_value(v)
            for k, v in data.items()
        }

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._redact_text(value)
        if isinstance(value, dict):
            return self._redact_dict(value)
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact_value(item) for item in value)
        return value


def default_log_file() -> str:
    """Default log location, overridable with LOG_FILE (empty disables file logging)."""
    return os.getenv("LOG_FILE", str(Path.home() / ".patrimony" / "patrimony.log"))


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure root logging with redaction and file rotation.

    Args:
        level: Logging level (default: INFO)
        log_file: Path to log file (default: ~/.patrimony/patrimony.log).
                  Pass an empty string to disable file logging.

    Example:
        >>> from patrimony.lib.logging_config import setup_logging
        >>> setup_logging(logging.DEBUG, log_file="")
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    api_key_filter = APIKeyFilter()
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    if root_logger.handlers:
        for handler in root_logger.handlers:
            if not any(isinstance(f, APIKeyFilter) for f in handler.filters):
                handler.addFilter(api_key_filter)
        return

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(api_key_filter)
    root_logger.addHandler(console_handler)

    if log_file is None:
        log_file = default_log_file()

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # 5MB per file, keep 3 backups
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(api_key_filter)
        root_logger.addHandler(file_handler)

    # aiohttp logs full URLs at debug level
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with credential filtering enabled.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, APIKeyFilter) for f in logger.filters):
        logger.addFilter(APIKeyFilter())

    return logger
