"""
Base classes for message functions.

A message function takes a Message and returns a Message, or None. For a
processor None means the message was dropped; a consumer always returns
None and must be the last function of a chain.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from config.environment import Environment
from core.errors import ConfigurationError, ParseError
from core.types import ExpressionEvaluator
from streamfn.expression import ExpressionContext, get_engine
from streamfn.message import Message
from streamfn.metrics import MeterCache


@dataclass
class FunctionContext:
    """
    Startup context passed to function factories.

    Attributes:
        environment: Frozen property environment
        engine: Expression evaluator shared by all functions
        beans: Read-only bean references for ``@name`` expressions
        meters: Meter cache for consumers that record metrics
    """

    environment: Environment = field(default_factory=Environment)
    engine: ExpressionEvaluator = field(default_factory=get_engine)
    beans: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    meters: Optional[MeterCache] = None

    def get_meters(self) -> MeterCache:
        if self.meters is None:
            self.meters = MeterCache()
        return self.meters

    def parse_expression(self, source: str, property_name: str) -> Any:
        """
        Parse an expression property while the function is being built.

        Raises:
            ConfigurationError: If the expression is malformed
        """
        try:
            return self.engine.parse(source)
        except ParseError as e:
            raise ConfigurationError(
                f"Invalid expression for property '{property_name}': {e.message}",
                cause=e,
                context={"property": property_name, "expression": source},
            ) from e

    def expression_context(self, message: Message) -> ExpressionContext:
        return ExpressionContext.for_message(message, self.beans)


class StreamFunction(ABC):
    """
    Abstract base class for message functions.

    Subclasses must implement __call__.

    Class attributes:
        name: Catalog name of the function
        accepts_text: The pipeline decodes byte payloads before calling it
        consumer: Terminal function; its None result means "consumed"
    """

    name: str = "unnamed"
    accepts_text: bool = False
    consumer: bool = False

    @abstractmethod
    def __call__(self, message: Message) -> Optional[Message]:
        """
        Apply the function to one message.

        Args:
            message: Incoming message

        Returns:
            The resulting message, or None when the message was dropped
            (processors) or consumed (consumers)

        Raises:
            PipelineError: When the message cannot be processed
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class CallableFunction(StreamFunction):
    """Adapts a plain ``Message -> Message | None`` callable."""

    def __init__(
        self,
        name: str,
        fn: Callable[[Message], Optional[Message]],
        accepts_text: bool = False,
        consumer: bool = False,
    ):
        self.name = name
        self.fn = fn
        self.accepts_text = accepts_text
        self.consumer = consumer

    def __call__(self, message: Message) -> Optional[Message]:
        return self.fn(message)


__all__ = ["FunctionContext", "StreamFunction", "CallableFunction"]
