"""Logging setup for export-tool.

structlog on top of the stdlib logging module, with two outputs: a JSON log
file per run and a human-readable console stream.
"""

from __future__ import annotations

import logging
import platform
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_SUFFIX = "_export.log"


class LogLevel(IntEnum):
    """Logging levels for export-tool.

    Uses integer values compatible with standard logging levels,
    with custom FULL level between DEBUG and INFO for detailed output.
    """

    DEBUG = logging.DEBUG
    FULL = logging.DEBUG + 5  # Custom level between DEBUG and INFO
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


# Register custom FULL log level with Python's logging module
logging.addLevelName(LogLevel.FULL, "FULL")


def configure_logging(
    log_file_level: LogLevel,
    log_cli_level: LogLevel,
    log_file_path: Path,
) -> None:
    """Configure structlog with dual output: file (JSON) and terminal (Console).

    Args:
        log_file_level: Minimum level for file logging
        log_cli_level: Minimum level for terminal display
        log_file_path: Path to log file
    """
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(log_file_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_cli_level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter_file = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=shared_processors,
    )
    file_handler.setFormatter(formatter_file)

    formatter_console = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=True),
        foreign_pre_chain=shared_processors,
    )
    console_handler.setFormatter(formatter_console)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(min(log_file_level, log_cli_level))


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger with bound context.

    Args:
        name: Logger name
        **context: Additional context to bind (e.g., operation)

    Returns:
        BoundLogger with context
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


def create_log_file_path(log_dir: Path, timestamp: datetime | None = None) -> Path:
    """Create the log file path ``<log_dir>/<YYYYmmdd_HHMMSS>_export.log``.

    Args:
        log_dir: Directory holding the log files
        timestamp: Optional timestamp for log filename. Defaults to current time.

    Returns:
        Path to log file
    """
    if timestamp is None:
        timestamp = datetime.now()
    return log_dir / f"{timestamp.strftime('%Y%m%d_%H%M%S')}{LOG_FILE_SUFFIX}"


def log_prelude(app_name: str, version: str) -> None:
    """Log the first entry of a run identifying the build and platform."""
    get_logger("exporttool").info(
        "Starting App",
        app_name=app_name,
        version=version,
        runtime=platform.system().lower(),
        python=platform.python_version(),
    )
