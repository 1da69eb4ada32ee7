"""Structured logging configuration.

Readable colored output for local work, JSON lines in production, and an
optional rotating JSON file log. Every record is stamped with the request
and user identifiers of the HTTP request that produced it (if any).
"""

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from bi_assistant.core.config import settings

LOG_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FILE = LOG_DIR / "bi_assistant.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai", "langchain")


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the fields passed to a log call through ``extra``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and value is not None
    }


class JSONFormatter(logging.Formatter):
    """JSON formatter for log aggregation systems."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        log_data.update(extra_fields(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET: ClassVar[str] = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        message = (
            f"{color}{timestamp} [{record.levelname:8}]{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )

        extras = [f"{key}={value}" for key, value in extra_fields(record).items()]
        if extras:
            message += f" | {' '.join(extras)}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class ContextFilter(logging.Filter):
    """Adds request_id and user_id from the request context to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        from bi_assistant.core.middleware import get_logging_context

        context = get_logging_context()
        record.request_id = context.get("request_id")
        record.user_id = context.get("user_id")
        return True


def setup_logging(enable_file_logging: bool = True) -> None:
    """Set up logging configuration based on environment.

    Args:
        enable_file_logging: Whether to also write JSON logs to
            logs/bi_assistant.log (10MB max, 5 backups).
    """
    is_production = settings.ENVIRONMENT == "production"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter() if is_production else ReadableFormatter())
    console_handler.addFilter(ContextFilter())
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setFormatter(JSONFormatter())
            file_handler.setLevel(logging.DEBUG)
            file_handler.addFilter(ContextFilter())
            root_logger.addHandler(file_handler)
            logging.info(f"File logging enabled: {LOG_FILE}")
        except OSError as e:
            logging.warning(f"Could not enable file logging: {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
