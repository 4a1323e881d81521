"""
Structured logging configuration.

JSON lines on stdout in production, a readable one-line format in debug.

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json unless DEBUG)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG when DEBUG)
"""
import json
import logging
import os
from datetime import datetime, timezone

APP_LOGGERS = (
    "accounts",
    "accounting",
    "budgets",
    "expenses",
    "notifications",
    "common",
    "ops",
    "celery",
)

# Attributes every LogRecord has; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
})


def get_logging_config(debug: bool = False) -> dict:
    """
    Build the Django LOGGING dict.

    Args:
        debug: Whether running in debug mode

    Returns:
        Django LOGGING dict
    """
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    if log_format == "json":
        formatters = {"default": {"()": "ops.logging_config.JsonFormatter"}}
        console = {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    else:
        formatters = {
            "default": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        console = {"class": "logging.StreamHandler", "formatter": "default"}

    loggers = {
        "": {"handlers": ["console"], "level": log_level},
        "django": {"handlers": ["console"], "level": log_level, "propagate": False},
        "django.request": {
            "handlers": ["console"],
            "level": log_level if debug else "ERROR",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"] if debug else ["null"],
            "level": "DEBUG" if debug else "INFO",
            "propagate": False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = {"handlers": ["console"], "level": log_level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": console,
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Each line has timestamp, level, logger and message, plus ``location``,
    ``exception`` and ``extra`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
