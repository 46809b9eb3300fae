"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the core library to ensure consistency and type safety.
"""

from enum import Enum
from typing import Any, Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        PERMANENT: Failures that repeat for the same input
                   (e.g., malformed expressions, configuration issues)
        UNKNOWN: Unclassified errors
    """

    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class ExpressionEvaluator(Protocol):
    """
    Protocol for expression evaluation strategies.

    The built-in engine implements a fixed grammar. A deployment needing a
    richer language plugs in another implementation of this protocol.
    """

    def parse(self, source: str) -> Any:
        """
        Parse expression source ahead of evaluation.

        Raises:
            ParseError: If the source is empty or malformed
        """
        ...

    def evaluate(self, source: str, context: Any) -> Any:
        """
        Evaluate expression source against a per-message context.

        Args:
            source: Expression text
            context: Evaluation context (payload, headers, beans)

        Returns:
            Evaluated value

        Raises:
            EvaluationError: If the expression cannot be parsed or evaluated
        """
        ...


__all__ = [
    "ErrorCategory",
    "ExpressionEvaluator",
]
