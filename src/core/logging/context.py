"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_function: ContextVar[str] = ContextVar("function", default="")
_stage_name: ContextVar[str] = ContextVar("stage_name", default="")
_message_id: ContextVar[str] = ContextVar("message_id", default="")
_worker_id: ContextVar[str] = ContextVar("worker_id", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")


def set_log_context(
    function: Optional[str] = None,
    stage: Optional[str] = None,
    message_id: Optional[str] = None,
    worker_id: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    if function is not None:
        _function.set(function)
    if stage is not None:
        _stage_name.set(stage)
    if message_id is not None:
        _message_id.set(message_id)
    if worker_id is not None:
        _worker_id.set(worker_id)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_log_context() -> Dict[str, str]:
    return {
        "function": _function.get(),
        "stage": _stage_name.get(),
        "message_id": _message_id.get(),
        "worker_id": _worker_id.get(),
        "trace_id": _trace_id.get(),
    }


def clear_log_context() -> None:
    _function.set("")
    _stage_name.set("")
    _message_id.set("")
    _worker_id.set("")
    _trace_id.set("")
