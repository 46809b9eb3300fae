"""
Counter and analytics consumers.

Both evaluate a meter name, an amount and a set of tags per message and
record the amount against a prometheus meter. A tag expression may yield a
collection; tags are then grouped by position so that one sample is recorded
per value index:

    tag.expression.kind  = payload.split(',')      -> ['a', 'b']
    tag.expression.color = headers['color']        -> 'red'

records ``kind=a,color=red`` and ``kind=b,color=""``. Missing positions are
padded with an empty string, so every sample carries the same label names.
"""

from typing import Any, Dict, List, Optional, Tuple

from core.errors import EvaluationError, ExpressionTypeError
from streamfn.expression.values import is_number, to_text, type_name
from streamfn.functions.base import FunctionContext, StreamFunction
from streamfn.message import Message
from streamfn.metrics import MeterCache
from streamfn.properties import AnalyticsProperties, CounterProperties, MeterProperties

APPLICATION_NAME = "spring.application.name"
UNAVAILABLE_TAG = "NA"
MESSAGE_COUNTER_PREFIX = "message."


def _tag_text(value: Any) -> str:
    return value if isinstance(value, str) else to_text(value)


class MeterConsumer(StreamFunction):
    """Shared evaluation of meter name, amount and tags."""

    consumer = True
    accepts_text = True
    default_name = "counts"
    empty_name = "counts"
    prefix = "counter"

    def __init__(self, properties: MeterProperties, context: FunctionContext, default_name: Optional[str] = None):
        self.properties = properties
        self.context = context
        self.meters: MeterCache = context.get_meters()
        self.fallback_name = default_name or self.default_name
        self.fixed_tags: Dict[str, str] = {
            key.strip(): value for key, value in properties.tag.fixed.items() if key.strip()
        }
        self.tag_expressions: Dict[str, str] = dict(properties.tag.expression)
        self._parse_expressions()
        self.label_names: Tuple[str, ...] = tuple(self.fixed_tags) + tuple(
            name for name in self.tag_expressions if name not in self.fixed_tags
        )

    def _parse_expressions(self) -> None:
        if self.properties.name_expression is not None:
            self.context.parse_expression(self.properties.name_expression, f"{self.prefix}.name-expression")
        if self.properties.amount_expression is not None:
            self.context.parse_expression(self.properties.amount_expression, f"{self.prefix}.amount-expression")
        for name, expression in self.tag_expressions.items():
            self.context.parse_expression(expression, f"{self.prefix}.tag.expression.{name}")

    def _evaluate(self, expression: str, message: Message) -> Any:
        return self.context.engine.evaluate(expression, self.context.expression_context(message))

    def meter_name(self, message: Message) -> str:
        if self.properties.name is not None:
            return self.properties.name
        if self.properties.name_expression is None:
            return self.fallback_name
        value = self._evaluate(self.properties.name_expression, message)
        if value is None or _tag_text(value) == "":
            return self.empty_name
        return _tag_text(value)

    def amount(self, message: Message) -> float:
        if self.properties.amount_expression is None:
            return 1.0
        value = self._evaluate(self.properties.amount_expression, message)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
        elif is_number(value):
            return float(value)
        raise ExpressionTypeError(
            f"Amount expression must evaluate to a number, got {type_name(value)}",
            expression=self.properties.amount_expression,
        )

    def tag_values(self, value: Any) -> List[str]:
        """Flatten one tag expression result into its list of values."""
        if value is None:
            return []
        if isinstance(value, (list, tuple, set, frozenset)):
            return [text for text in (_tag_text(v) for v in value if v is not None) if text]
        return [_tag_text(value)]

    def tag_rows(self, message: Message) -> List[Dict[str, str]]:
        """One label set per sample to record."""
        grouped: Dict[str, List[str]] = {}
        for name, expression in self.tag_expressions.items():
            values = self.tag_values(self._evaluate(expression, message))
            if values:
                grouped[name] = values

        rows = []
        for i in range(max((len(values) for values in grouped.values()), default=1)):
            row = {name: "" for name in self.label_names}
            row.update(self.fixed_tags)
            for name, values in grouped.items():
                row[name] = values[i] if i < len(values) else ""
            rows.append(row)
        return rows

    def _label_values(self, labels: Dict[str, str]) -> List[str]:
        return [labels.get(name, "") for name in self.label_names]

    def increment(self, name: str, labels: Dict[str, str], amount: float) -> None:
        counter = self.meters.counter(name, self.label_names)
        if self.label_names:
            counter = counter.labels(*self._label_values(labels))
        try:
            counter.inc(amount)
        except ValueError as e:
            # Counters only go up
            raise EvaluationError(
                f"Cannot increment counter '{name}' by {amount}: {e}",
                expression=self.properties.amount_expression,
                cause=e,
            ) from e

    def record(self, name: str, labels: Dict[str, str], amount: float) -> None:
        self.increment(name, labels, amount)

    def __call__(self, message: Message) -> None:
        name = self.meter_name(message)
        amount = self.amount(message)
        for row in self.tag_rows(message):
            self.record(name, row, amount)
        return None


class CounterConsumer(MeterConsumer):
    """Increments a counter per message."""

    name = "counterConsumer"

    def __call__(self, message: Message) -> None:
        super().__call__(message)
        if self.properties.message_counter_enabled:
            self.increment(
                MESSAGE_COUNTER_PREFIX + self.meter_name(message),
                dict(self.fixed_tags),
                1.0,
            )
        return None


class AnalyticsConsumer(MeterConsumer):
    """Updates a counter or gauge per message.

    Unlike the counter consumer a tag expression yielding nothing records
    the tag as ``NA``.
    """

    name = "analyticsConsumer"
    default_name = "analytics"
    empty_name = "empty"
    prefix = "analytics"

    def tag_values(self, value: Any) -> List[str]:
        return super().tag_values(value) or [UNAVAILABLE_TAG]

    def record(self, name: str, labels: Dict[str, str], amount: float) -> None:
        if self.properties.meter_type != "gauge":
            self.increment(name, labels, amount)
            return
        gauge = self.meters.gauge(name, self.label_names)
        if self.label_names:
            gauge = gauge.labels(*self._label_values(labels))
        gauge.set(int(amount))


def counter_consumer(context: FunctionContext) -> CounterConsumer:
    properties = context.environment.bind("counter", CounterProperties)
    default_name = context.environment.get_property(APPLICATION_NAME)
    return CounterConsumer(properties, context, default_name=default_name)


def analytics_consumer(context: FunctionContext) -> AnalyticsConsumer:
    properties = context.environment.bind("analytics", AnalyticsProperties)
    default_name = context.environment.get_property(APPLICATION_NAME)
    return AnalyticsConsumer(properties, context, default_name=default_name)


__all__ = [
    "MeterConsumer",
    "CounterConsumer",
    "AnalyticsConsumer",
    "counter_consumer",
    "analytics_consumer",
    "UNAVAILABLE_TAG",
]
