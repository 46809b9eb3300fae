"""Expression engine: parse-once, evaluate-per-message.

Usage:
    engine = ExpressionEngine()
    context = ExpressionContext.for_message(message, beans={"value": "beanValue"})
    engine.evaluate("payload.length() > 5", context)
"""

import builtins
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping, Optional

from core.errors import EvaluationError, ExpressionTypeError
from streamfn.expression.evaluator import Evaluator
from streamfn.expression.nodes import Node
from streamfn.expression.parser import parse_expression
from streamfn.message import Message

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class ExpressionContext:
    """Read-only view of one message plus the process-wide bean references."""

    payload: Any = None
    headers: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    beans: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def for_message(
        cls, message: Message, beans: Optional[Mapping[str, Any]] = None
    ) -> "ExpressionContext":
        return cls(
            payload=message.payload,
            headers=message.headers,
            beans=beans if beans is not None else _EMPTY,
        )


@dataclass(frozen=True)
class Expression:
    """A parsed expression, safe to share between threads."""

    source: str
    tree: Node

    def evaluate(self, context: ExpressionContext) -> Any:
        """Evaluate against a context.

        Raises:
            EvaluationError: ParseError, UnknownReferenceError or
                ExpressionTypeError for failures during evaluation
        """
        try:
            return Evaluator(context, self.source).evaluate(self.tree)
        except EvaluationError:
            raise
        except builtins.TypeError as e:
            raise ExpressionTypeError(str(e), expression=self.source, cause=e) from e
        except (ArithmeticError, LookupError, ValueError, AttributeError, RecursionError, re.error) as e:
            raise EvaluationError(
                f"Failed to evaluate expression: {e}",
                expression=self.source,
                cause=e,
            ) from e


class ExpressionEngine:
    """
    Evaluates message expressions.

    Parsed expressions are cached by source text. Evaluation is synchronous,
    side-effect free and safe to call from many workers at once.
    """

    def __init__(self, cache_size: int = 512):
        self._parse = lru_cache(maxsize=cache_size)(self._compile)

    @staticmethod
    def _compile(source: str) -> Expression:
        return Expression(source, parse_expression(source))

    def parse(self, source: str) -> Expression:
        """Parse expression source.

        Raises:
            ParseError: If the source is empty or malformed
        """
        return self._parse(source)

    def evaluate(self, source: str, context: ExpressionContext) -> Any:
        """Parse (cached) and evaluate ``source`` against ``context``."""
        return self.parse(source).evaluate(context)

    def cache_info(self):
        return self._parse.cache_info()


_default_engine: Optional[ExpressionEngine] = None


def get_engine() -> ExpressionEngine:
    """Get the shared default engine."""
    global _default_engine
    if _default_engine is None:
        _default_engine = ExpressionEngine()
    return _default_engine


__all__ = ["ExpressionContext", "Expression", "ExpressionEngine", "get_engine"]
