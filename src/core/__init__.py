"""
Core library: reusable, function-agnostic components.

Modules:
    logging     - Structured JSON/console logging with context propagation
    errors      - Exception hierarchy and error classification
    utils       - JSON serialization helpers
    types       - Shared enums and protocols

Nothing in core depends on the streamfn message functions.
"""

from .types import ErrorCategory, ExpressionEvaluator

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "ExpressionEvaluator",
]
