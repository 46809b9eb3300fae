"""
Function pipeline.

Runs the functions of a chain in order for one message at a time:

    inbound -> [originalContentType restore] -> fn1 -> fn2 -> ... -> [to bytes]

Functions that operate on text get the payload decoded first when it is still
bytes of a textual content type. A function returning None stops the chain:
the message was filtered (processor) or consumed (consumer). A failing stage
stops the chain too and is reported on the result; it never raises.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from core.errors import ConfigurationError, PipelineError, wrap_exception
from core.logging import LogContext, StageLogContext, log_exception
from streamfn.binding import FunctionChain
from streamfn.catalog import FunctionCatalog
from streamfn.coercion import Direction, coerce
from streamfn.functions import FunctionContext, StreamFunction
from streamfn.message import CONTENT_TYPE, ORIGINAL_CONTENT_TYPE, Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of running one message through the chain.

    Attributes:
        input: Inbound message
        output: Resulting message; None when filtered, consumed or failed
        filtered_by: Name of the processor that dropped the message
        consumed: The message reached a consumer
        failed_stage: Name of the function that raised
        error: The raised error, wrapped as a PipelineError
    """

    input: Message
    output: Optional[Message] = None
    filtered_by: Optional[str] = None
    consumed: bool = False
    failed_stage: Optional[str] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def filtered(self) -> bool:
        return self.filtered_by is not None


def restore_original_content_type(message: Message) -> Message:
    """Copy an inbound ``originalContentType`` header over the content type."""
    original = message.headers.get(ORIGINAL_CONTENT_TYPE)
    if original is None:
        return message
    if message.headers.get(CONTENT_TYPE) == original:
        return message
    return message.with_content_type(str(original))


class FunctionPipeline:
    """An ordered chain of functions."""

    def __init__(
        self,
        chain: FunctionChain,
        functions: Sequence[StreamFunction],
        encode_output: bool = True,
    ):
        if len(functions) != len(chain.names):
            raise ConfigurationError(
                f"Chain '{chain.definition}' has {len(chain.names)} functions, got {len(functions)}"
            )
        for function in functions[:-1]:
            if function.consumer:
                raise ConfigurationError(
                    f"Consumer '{function.name}' must be the last function of '{chain.definition}'",
                    context={"function_definition": chain.definition},
                )
        self.chain = chain
        self.functions = list(functions)
        self.encode_output = encode_output

    @classmethod
    def build(
        cls,
        chain: FunctionChain,
        catalog: FunctionCatalog,
        context: FunctionContext,
        encode_output: bool = True,
    ) -> "FunctionPipeline":
        """
        Build every function of the chain from the catalog.

        Raises:
            ConfigurationError: Unknown function, invalid properties, a
                malformed expression or a consumer that is not last
        """
        functions = []
        for name in chain.names:
            function = catalog.create(name, context)
            logger.debug(
                "Created function",
                extra={"function_name": name, "composite_name": chain.composite_name},
            )
            functions.append(function)
        return cls(chain, functions, encode_output=encode_output)

    @property
    def is_consumer(self) -> bool:
        return self.functions[-1].consumer

    def __repr__(self) -> str:
        return f"FunctionPipeline(definition={self.chain.definition!r})"

    def process(self, message: Message) -> PipelineResult:
        """Run one message through the chain."""
        inbound = message
        current = restore_original_content_type(message)

        with LogContext(function=self.chain.composite_name, message_id=message.id):
            for name, function in zip(self.chain.names, self.functions):
                if function.accepts_text:
                    current = coerce(current, Direction.TO_TEXT)
                try:
                    with StageLogContext(name, logger=logger, message_id=message.id) as stage:
                        result = function(current)
                        stage.set_result(dropped=result is None)
                except Exception as e:
                    error = wrap_exception(e, context={"failed_stage": name})
                    log_exception(
                        logger,
                        error,
                        "Function failed",
                        level=logging.WARNING,
                        include_traceback=not isinstance(e, PipelineError),
                        failed_stage=name,
                        function_definition=self.chain.definition,
                    )
                    return PipelineResult(input=inbound, failed_stage=name, error=error)

                if result is None:
                    if function.consumer:
                        return PipelineResult(input=inbound, consumed=True)
                    return PipelineResult(input=inbound, filtered_by=name)
                current = result

        if self.encode_output:
            current = coerce(current, Direction.TO_BYTES)
        return PipelineResult(input=inbound, output=current)

    def __call__(self, message: Message) -> Optional[Message]:
        return self.process(message).output

    def process_all(self, messages: Iterable[Message]) -> Iterator[PipelineResult]:
        for message in messages:
            yield self.process(message)


@dataclass
class PipelineStats:
    """Counts of a run over many messages."""

    processed: int = 0
    emitted: int = 0
    filtered: int = 0
    consumed: int = 0
    failed: int = 0

    def record(self, result: PipelineResult) -> None:
        self.processed += 1
        if not result.ok:
            self.failed += 1
        elif result.filtered:
            self.filtered += 1
        elif result.consumed:
            self.consumed += 1
        else:
            self.emitted += 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "messages_processed": self.processed,
            "messages_emitted": self.emitted,
            "messages_filtered": self.filtered,
            "messages_consumed": self.consumed,
            "messages_failed": self.failed,
        }


def outputs(results: Iterable[PipelineResult]) -> List[Message]:
    return [result.output for result in results if result.output is not None]


__all__ = [
    "PipelineResult",
    "PipelineStats",
    "FunctionPipeline",
    "restore_original_content_type",
    "outputs",
]
