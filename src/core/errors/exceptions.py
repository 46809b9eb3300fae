"""
Unified exception hierarchy for streamfn.

Provides typed exceptions with a category so callers can tell startup
configuration failures apart from per-message evaluation failures.
"""

import builtins

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class PipelineError(Exception):
    """
    Base exception for all streamfn errors.

    Attributes:
        message: Human-readable error description
        category: Error classification (permanent or unknown)
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Permanent Errors
# =============================================================================


class PermanentError(PipelineError):
    """Base class for errors that fail the same way for the same input."""

    category = ErrorCategory.PERMANENT


class ConfigurationError(PermanentError):
    """Invalid or missing configuration. Fatal at startup."""

    pass


# =============================================================================
# Expression Errors
# =============================================================================


class EvaluationError(PermanentError):
    """
    An expression could not be evaluated.

    Raised per evaluation; callers decide whether to skip a header, drop the
    message or surface a failure result.
    """

    def __init__(
        self,
        message: str,
        expression: str | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        context = dict(context or {})
        if expression is not None:
            context.setdefault("expression", expression)
        super().__init__(message, cause, context)
        self.expression = expression


class ParseError(EvaluationError):
    """Malformed expression or definition text."""

    def __init__(
        self,
        message: str,
        expression: str | None = None,
        position: int | None = None,
        cause: Exception | None = None,
    ):
        context = {"position": position} if position is not None else None
        super().__init__(message, expression, cause, context)
        self.position = position


class EmptyFunctionNameError(ParseError):
    """A function definition contains an empty element."""

    def __init__(self, definition: str):
        super().__init__(
            f"Function definition '{definition}' contains an empty function name",
            expression=definition,
        )
        self.definition = definition


class UnknownReferenceError(EvaluationError):
    """A bean reference (@name) is not registered."""

    def __init__(self, reference: str, expression: str | None = None):
        super().__init__(
            f"No bean registered under '@{reference}'",
            expression=expression,
            context={"reference": reference},
        )
        self.reference = reference


class ExpressionTypeError(EvaluationError, builtins.TypeError):
    """An operation was applied to a value of an incompatible type."""

    pass


# Taxonomy name. Import it qualified; it shadows the builtin.
TypeError = ExpressionTypeError


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    # Already classified
    if isinstance(exc, PipelineError):
        return exc.category

    if isinstance(exc, (builtins.TypeError, ValueError, KeyError, LookupError)):
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type = PipelineError,
    context: dict | None = None,
) -> PipelineError:
    """Wrap a generic exception in appropriate PipelineError subclass."""
    if isinstance(exc, PipelineError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    context = context or {}
    context.setdefault("error_type", type(exc).__name__)

    if category == ErrorCategory.PERMANENT and default_class is PipelineError:
        return PermanentError(str(exc), cause=exc, context=context)

    return default_class(str(exc), cause=exc, context=context)
