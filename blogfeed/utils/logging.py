"""
BlogFeed Logging Configuration
==============================

Console output goes through rich for local runs, or JSON lines when the
endpoint runs behind a log collector. Files are always JSON.

Components log through ``get_logger_for_component`` so every record
carries the component name plus the feed URL or cache key it concerns.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler


# Attributes every LogRecord has; anything else arrived through ``extra``
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.server", "asyncio")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(
    name: str = "blogfeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and/or rotating file handlers to ``name``.

    Args:
        name: Logger name
        level: Logging level name
        log_file: Rotating log file path (optional)
        console: Whether to log to stderr
        structured: JSON on the console instead of rich output
        max_file_size: Bytes before the log file rotates
        backup_count: Rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    # Reconfiguring replaces handlers rather than stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        if structured:
            console_handler: logging.Handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler = RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
                markup=False,
            )
            console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose fixed context is merged with per-call ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    feed_url: Optional[str] = None,
    cache_key: Optional[str] = None,
) -> LoggerAdapter:
    """Logger named ``blogfeed.<component_name>`` carrying its context.

    Args:
        component_name: Name of the component (e.g. 'feed_fetcher', 'cache_gateway')
        feed_url: Upstream feed the component talks to (optional)
        cache_key: Cache entry the component reads or writes (optional)
    """
    context: Dict[str, Any] = {"component": component_name}
    if feed_url:
        context["feed_url"] = feed_url
    if cache_key:
        context["cache_key"] = cache_key

    return LoggerAdapter(logging.getLogger(f"blogfeed.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/blogfeed.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the ``blogfeed`` logger tree and quiet library loggers."""
    logger = setup_logger(
        name="blogfeed",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


class PerformanceLogger:
    """Context manager that logs how long an operation took.

    Success is logged at INFO, failure at WARNING. Exceptions propagate.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return

        duration = time.perf_counter() - self._started
        context = {**self.context, "duration_seconds": round(duration, 4), "success": exc_type is None}

        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {duration:.3f}s", extra=context)
        else:
            self.logger.warning(f"Failed {self.operation} in {duration:.3f}s: {exc_val}", extra=context)
