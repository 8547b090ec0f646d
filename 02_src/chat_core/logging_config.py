"""Structured logging configuration for the chat sync core."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Chatty at INFO; only their warnings are interesting here
QUIET_LOGGERS = ("aiosqlite", "httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ids from with_context() become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        for key, value in getattr(record, "context", {}).items():
            log_data.setdefault(key, value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | Path | None = None,
) -> None:
    """
    Route all chat_core, uvicorn and fastapi logs through the JSON formatter.

    Args:
        log_level: Root level. Defaults to LOG_LEVEL env var or INFO.
        log_file: Rotating log file. Defaults to LOG_FILE env var or 04_logs/app.log.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_path = Path(log_file or os.getenv("LOG_FILE") or DEFAULT_LOG_PATH)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "chat_core.logging_config.JSONFormatter"},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": str(log_path),
                    "maxBytes": 5 * 1024 * 1024,
                    "backupCount": 3,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"level": level, "handlers": ["file", "console"]},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)


class ContextAdapter(logging.LoggerAdapter):
    """Attaches a fixed set of ids to every record it emits."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra["context"] = {**self.extra, **extra.get("context", {})}
        return msg, kwargs


def with_context(logger: logging.Logger, **context) -> ContextAdapter:
    """Wrap a logger so every record carries the given ids (room_id, user_id, event_id)."""
    return ContextAdapter(logger, context)
