"""
Built-in message functions.

Each function has a factory ``(FunctionContext) -> StreamFunction`` that
binds its properties from the environment; the factories are registered in
the default catalog (see streamfn.catalog).
"""

from streamfn.functions.base import CallableFunction, FunctionContext, StreamFunction
from streamfn.functions.expressions import (
    FilterFunction,
    TransformFunction,
    filter_function,
    transform_function,
)
from streamfn.functions.headers import (
    HeaderEnricherFunction,
    HeaderFilterFunction,
    header_enricher_function,
    header_filter_function,
)
from streamfn.functions.log import LogConsumer, log_consumer
from streamfn.functions.meters import (
    AnalyticsConsumer,
    CounterConsumer,
    MeterConsumer,
    analytics_consumer,
    counter_consumer,
)

__all__ = [
    "FunctionContext",
    "StreamFunction",
    "CallableFunction",
    "HeaderEnricherFunction",
    "HeaderFilterFunction",
    "FilterFunction",
    "TransformFunction",
    "MeterConsumer",
    "CounterConsumer",
    "AnalyticsConsumer",
    "LogConsumer",
    "header_enricher_function",
    "header_filter_function",
    "filter_function",
    "transform_function",
    "counter_consumer",
    "analytics_consumer",
    "log_consumer",
]
