"""Log consumer."""

import logging

from streamfn.expression.values import to_text
from streamfn.functions.base import FunctionContext, StreamFunction
from streamfn.message import Message
from streamfn.properties import LogProperties


class LogConsumer(StreamFunction):
    """Logs an expression result at a configured level under a configured logger name."""

    name = "logConsumer"
    accepts_text = True
    consumer = True

    def __init__(self, properties: LogProperties, context: FunctionContext):
        self.expression = properties.expression
        context.parse_expression(self.expression, "log.expression")
        self.level = properties.level_number
        self.context = context
        self.target = logging.getLogger(properties.name)

    def __call__(self, message: Message) -> None:
        result = self.context.engine.evaluate(
            self.expression, self.context.expression_context(message)
        )
        if self.target.isEnabledFor(self.level):
            self.target.log(self.level, to_text(result))
        return None


def log_consumer(context: FunctionContext) -> LogConsumer:
    return LogConsumer(context.environment.bind("log", LogProperties), context)


__all__ = ["LogConsumer", "log_consumer"]
