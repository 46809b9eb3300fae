"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Expression evaluation errors (parse, unknown reference, type mismatch)
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    ConfigurationError,
    EmptyFunctionNameError,
    ErrorCategory,
    EvaluationError,
    ExpressionTypeError,
    ParseError,
    PermanentError,
    PipelineError,
    UnknownReferenceError,
    classify_exception,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "PermanentError",
    "ConfigurationError",
    # Expression errors
    "EvaluationError",
    "ParseError",
    "EmptyFunctionNameError",
    "UnknownReferenceError",
    "ExpressionTypeError",
    # Classification utilities
    "classify_exception",
    "wrap_exception",
]
