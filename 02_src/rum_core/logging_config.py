"""Structured logging configuration for the RUM agent."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import resolve_log_path

ROOT_LOGGER_NAME = "rum_core"

# Agent log levels as accepted by the `logLevel` config key
AGENT_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


# Attributes passed through `extra=` that are copied into the JSON line
EXTRA_FIELDS = ("transaction_id", "trace_id", "context")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with transaction ids when given."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Setup structured logging for the agent host.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to LOG_LEVEL env var or INFO.
        log_file: Path to log file. Defaults to LOG_FILE env var or
                  04_logs/rum_agent.log.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    log_path = Path(log_file) if log_file else resolve_log_path(os.getenv("LOG_FILE"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "rum_core.logging_config.JSONFormatter",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(log_path),
                "maxBytes": 10 * 1024 * 1024,  # 10 MB
                "backupCount": 5,
                "formatter": "json",
                "encoding": "utf-8",
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": log_level.upper(),
            "handlers": ["file", "console"],
        },
    }

    logging.config.dictConfig(logging_config)


def apply_agent_log_level(config: dict) -> None:
    """Map the agent `logLevel` setting onto the package logger.

    Registered as a config change subscriber, so it runs on every
    `set_config` call. Unknown levels leave the logger untouched.
    """
    level = AGENT_LOG_LEVELS.get(str(config.get("logLevel", "")).lower())
    if level is not None:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
