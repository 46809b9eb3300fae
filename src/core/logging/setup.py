"""Logging setup and configuration."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

# Default settings
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "jsonpath_ng",
    "ply",
]


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else DEFAULT_CONSOLE_LEVEL
    return level


def setup_logging(
    name: str = "streamfn",
    function: str | None = None,
    log_file: Path | None = None,
    json_format: bool = False,
    console_level: int | str = DEFAULT_CONSOLE_LEVEL,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    worker_id: str | None = None,
) -> logging.Logger:
    """
    Configure logging with a console handler and an optional rotating file.

    Console output goes to stderr so stdout stays free for message payloads.

    Args:
        name: Logger name to return
        function: Function definition being run, added to log context
        log_file: Path of a rotating log file (default: console only)
        json_format: Use JSON format for the console handler (default: False).
            File logs are always JSON.
        console_level: Console handler level (default: INFO)
        file_level: File handler level (default: DEBUG)
        max_bytes: Rotate the log file at this size
        backup_count: Number of rotated files to keep
        suppress_noisy: Quiet down third-party library loggers
        worker_id: Worker identifier for context

    Returns:
        Configured logger instance
    """
    if worker_id:
        set_log_context(worker_id=worker_id)
    if function:
        set_log_context(function=function)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_resolve_level(console_level))
    console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(_resolve_level(file_level))
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(
        f"Logging initialized: file={log_file}, json={json_format}",
        extra={"function_definition": function},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_startup_banner(
    logger: logging.Logger,
    app_name: str,
    definition: str | None = None,
    bindings: dict | None = None,
    extra_config: dict | None = None,
) -> None:
    """
    Log standard startup information.

    Args:
        logger: Logger instance to use
        app_name: Application name
        definition: Normalized function definition
        bindings: Binding properties written at startup
        extra_config: Additional configuration to log
    """
    logger.info("=" * 70)
    logger.info("Starting %s", app_name)
    logger.info("=" * 70)
    logger.info("Function definition: %s", definition or "not set")

    for key, value in (bindings or {}).items():
        logger.info("%s: %s", key, value)

    if extra_config:
        for key, value in extra_config.items():
            logger.info("%s: %s", key, value)

    logger.info("=" * 70)
