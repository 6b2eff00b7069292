"""
Logging configuration with credential redaction and health check suppression
"""

import logging
import logging.config
import re
from typing import Any, Dict

REDACTED = "***REDACTED***"

_CREDENTIAL_PATTERNS = [
    re.compile(r"(?i)\b(Basic|Bearer)\s+[A-Za-z0-9+/=._~-]+"),
    re.compile(r"(?i)\b(password|secret|token|api_key|apikey|authorization)(\s*[=:]\s*)(['\"]?)[^\s,'\"}]+"),
]


def redact(message: str) -> str:
    """Replace credential material in a log message."""
    message = _CREDENTIAL_PATTERNS[0].sub(lambda m: f"{m.group(1)} {REDACTED}", message)
    return _CREDENTIAL_PATTERNS[1].sub(
        lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)}{REDACTED}", message
    )


class SensitiveDataFilter(logging.Filter):
    """Redact auth headers and secrets from every record passing a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()
        return True


class AccessLogFilter(logging.Filter):
    """Drop uvicorn access lines for the health endpoint."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        return "GET /health" not in record.getMessage()


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the API process and the nowbridge loggers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "sensitive_data": {"()": SensitiveDataFilter},
            "access_log": {"()": AccessLogFilter},
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(message)s"
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
                "filters": ["sensitive_data"],
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stderr",
                "filters": ["access_log", "sensitive_data"],
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
            "httpx": {"handlers": ["default"], "level": "WARNING", "propagate": False},
            "nowbridge": {"handlers": ["default"], "level": level, "propagate": False},
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"],
        },
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
