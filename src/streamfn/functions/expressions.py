"""Filter and transform functions driven by a single expression."""

from typing import Optional

from core.errors import EvaluationError, ExpressionTypeError
from streamfn.expression.values import type_name
from streamfn.functions.base import FunctionContext, StreamFunction
from streamfn.message import Message
from streamfn.properties import FilterProperties, TransformProperties


class FilterFunction(StreamFunction):
    """Passes messages whose expression evaluates to true, drops the rest."""

    name = "filterFunction"
    accepts_text = True
    property_name = "filter.function.expression"

    def __init__(self, expression: str, context: FunctionContext):
        context.parse_expression(expression, self.property_name)
        self.expression = expression
        self.context = context

    def __call__(self, message: Message) -> Optional[Message]:
        result = self.context.engine.evaluate(
            self.expression, self.context.expression_context(message)
        )
        if not isinstance(result, bool):
            raise ExpressionTypeError(
                f"Filter expression must evaluate to a boolean, got {type_name(result)}",
                expression=self.expression,
            )
        return message if result else None


class TransformFunction(StreamFunction):
    """Replaces the payload with the expression result."""

    name = "transformFunction"
    accepts_text = True
    property_name = "transform.function.expression"

    def __init__(self, expression: str, context: FunctionContext):
        context.parse_expression(expression, self.property_name)
        self.expression = expression
        self.context = context

    def __call__(self, message: Message) -> Message:
        result = self.context.engine.evaluate(
            self.expression, self.context.expression_context(message)
        )
        if result is None:
            raise EvaluationError(
                "Transform expression evaluated to null",
                expression=self.expression,
            )
        return message.with_payload(result)


def filter_function(context: FunctionContext) -> FilterFunction:
    properties = context.environment.bind("filter.function", FilterProperties)
    return FilterFunction(properties.expression, context)


def transform_function(context: FunctionContext) -> TransformFunction:
    properties = context.environment.bind("transform.function", TransformProperties)
    return TransformFunction(properties.expression, context)


__all__ = ["FilterFunction", "TransformFunction", "filter_function", "transform_function"]
