"""Context managers for structured logging."""

import logging
import time
from typing import Any, Dict, Optional

from core.logging.context import get_log_context, set_log_context
from core.logging.utilities import log_with_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(function="upper|filter", message_id=msg_id):
            # All logs in this block will carry function and message_id
            do_work()
    """

    def __init__(
        self,
        function: Optional[str] = None,
        stage: Optional[str] = None,
        message_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ):
        self.new_context = {
            "function": function,
            "stage": stage,
            "message_id": message_id,
            "worker_id": worker_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restore old context
        set_log_context(
            function=self.old_context.get("function", ""),
            stage=self.old_context.get("stage", ""),
            message_id=self.old_context.get("message_id", ""),
            worker_id=self.old_context.get("worker_id", ""),
        )
        return False


class StageLogContext(LogContext):
    """
    Context manager for one function stage with automatic timing.

    Usage:
        with StageLogContext("filterFunction", logger=logger) as ctx:
            result = fn(message)
            ctx.set_result(filtered=result is None)
    """

    def __init__(
        self,
        stage: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
        message_id: Optional[str] = None,
    ):
        super().__init__(stage=stage, message_id=message_id)
        self.stage = stage
        self.logger = logger
        self.level = level
        self.start_time: Optional[float] = None
        self.result_context: Dict[str, Any] = {}

    def __enter__(self) -> "StageLogContext":
        super().__enter__()
        self.start_time = time.perf_counter()
        return self

    def set_result(self, **kwargs: Any) -> None:
        """Set result context to be logged on exit."""
        self.result_context.update(kwargs)

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self.start_time) * 1000
        self.result_context["duration_ms"] = round(duration_ms, 2)
        if self.logger is not None and exc_val is None:
            log_with_context(
                self.logger,
                self.level,
                f"Stage complete: {self.stage}",
                function_name=self.stage,
                **self.result_context,
            )
        super().__exit__(exc_type, exc_val, exc_tb)
        return False
