"""
Centralized logging configuration for Nexus.

Every process (API server, ad-hoc graph builds) logs one line per record:
Format: 2026-01-06T14:05:52Z [source] LEVEL message

Records emitted through the graph diagnostics channel carry structured
fields (``diagnostic_kind``, ``subject_id``, ``owner_id``). The formatter
appends them as ``key=value`` pairs so drops and warnings stay greppable:
    2026-01-06T14:05:52Z [api] WARNING Dropping ghost connection kind=ghost_connection subject=abc123

Environment Variables:
    LOG_LEVEL: "TRACE", "DEBUG" or "INFO" (default)

Usage:
    from nexus.logging_config import configure_logging, get_logger

    configure_logging(source="api")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime

# Below DEBUG: raw PocketBase queries; log with logger.log(TRACE, ...)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

STRUCTURED_FIELDS: tuple[tuple[str, str], ...] = (
    ("diagnostic_kind", "kind"),
    ("subject_id", "subject"),
    ("owner_id", "owner"),
)


class ISO8601Formatter(logging.Formatter):
    """Formatter producing UTC timestamps plus any structured graph fields."""

    def __init__(self, source: str = "app"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()

        extras = [
            f"{label}={getattr(record, attr)}"
            for attr, label in STRUCTURED_FIELDS
            if getattr(record, attr, None) is not None
        ]
        if extras:
            message = f"{message} {' '.join(extras)}"

        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{timestamp} [{self.source}] {record.levelname} {message}"


class HealthCheckFilter(logging.Filter):
    """Drop access-log lines for the health endpoint unless DEBUG is enabled."""

    HEALTH_PATHS = ("/health", "/api/health")

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno <= logging.DEBUG:
            return True
        message = record.getMessage()
        return not any(path in message and "GET" in message for path in self.HEALTH_PATHS)


def _level_from_env() -> int:
    value = os.getenv("LOG_LEVEL", "").upper()
    if value == "TRACE":
        return TRACE
    if value == "DEBUG":
        return logging.DEBUG
    return logging.INFO


def _stdout_handler(source: str, level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ISO8601Formatter(source=source))
    handler.addFilter(HealthCheckFilter())
    return handler


def configure_logging(source: str = "app", level: int | None = None) -> logging.Logger:
    """Install the unified stdout handler on the root and uvicorn loggers.

    Args:
        source: Identifier shown in brackets (e.g., "api", "graph")
        level: Explicit level; defaults to LOG_LEVEL from the environment

    Returns:
        Configured root logger
    """
    if level is None:
        level = _level_from_env()

    handler = _stdout_handler(source, level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # uvicorn installs its own handlers, which would bypass the health filter
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
