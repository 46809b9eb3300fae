"""
Structured logging module.

Provides JSON logging with context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from core.logging.context_managers import LogContext, StageLogContext
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import get_logger, log_startup_banner, setup_logging
from core.logging.utilities import (
    format_pipeline_summary,
    log_exception,
    log_with_context,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "log_startup_banner",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Context Managers
    "LogContext",
    "StageLogContext",
    # Utilities
    "log_with_context",
    "log_exception",
    "format_pipeline_summary",
]
