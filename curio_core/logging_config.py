"""Logging configuration for the Curio kernel.

The kernel only emits records through module-level loggers; hosts decide
where they go. ``configure_logging`` is a convenience for hosts and tools
that have no logging setup of their own.

Usage:
    from curio_core.logging_config import configure_logging
    configure_logging(log_level="debug", log_format="json")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import LOG_FORMATS, Settings, get_settings

# Attributes every LogRecord carries; anything else came in via extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or value is None:
                continue
            try:
                json.dumps(value)
                log_obj[key] = value
            except (TypeError, ValueError):
                log_obj[key] = str(value)

        return json.dumps(log_obj)


def _create_text_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str | None = None,
    log_format: str | None = None,
    settings: Settings | None = None,
) -> logging.Logger:
    """Install a single stderr handler on the ``curio_core`` logger.

    Args:
        log_level: Level name; defaults to ``settings.log_level``
        log_format: 'text' or 'json'; defaults to ``settings.log_format``
        settings: Settings to read defaults from (process settings if None)

    Returns:
        The configured ``curio_core`` package logger

    Raises:
        ValueError: If log_format is unknown
    """
    if log_level is None or log_format is None:
        settings = settings or get_settings()
        log_level = log_level or settings.log_level
        log_format = log_format or settings.log_format

    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}. Available: {list(LOG_FORMATS)}")

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger("curio_core")
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on reconfigure
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if log_format == "json" else _create_text_formatter())
    logger.addHandler(handler)

    return logger
