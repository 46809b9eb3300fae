"""
Application bootstrap.

Turns a loaded Environment into a running pipeline, in this order:

1. Function binding rewrite (definition normalized, ``-in-0``/``-out-0``
   binding names written with highest priority)
2. Content-type defaults for the input/output bindings (lowest priority)
3. Environment frozen; nothing writes to it after this point
4. Functions built from the catalog and composed into a FunctionPipeline

Any failure is fatal and raised before a single message is processed.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from config.environment import Environment
from core.errors import ConfigurationError
from core.logging import log_startup_banner
from core.types import ExpressionEvaluator
from streamfn.binding import (
    FUNCTION_DEFINITION,
    INPUT_BINDING,
    OUTPUT_BINDING,
    FunctionBinding,
    apply_content_type_defaults,
    apply_function_bindings,
    binding_content_type,
)
from streamfn.catalog import FunctionCatalog, default_catalog
from streamfn.expression import get_engine
from streamfn.functions import FunctionContext
from streamfn.message import Message
from streamfn.metrics import MeterCache
from streamfn.pipeline import FunctionPipeline, PipelineResult
from streamfn.properties import AppProperties

logger = logging.getLogger(__name__)

APP_PREFIX = "streamfn"
APP_NAME_PROPERTY = "spring.application.name"


@dataclass
class Application:
    """A bootstrapped deployment: frozen environment plus its pipeline."""

    environment: Environment
    binding: FunctionBinding
    pipeline: FunctionPipeline
    properties: AppProperties
    input_content_type: Optional[str] = None
    output_content_type: Optional[str] = None

    @property
    def definition(self) -> str:
        return self.binding.chain.definition

    def inbound(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> Message:
        """Wrap a raw payload as it would arrive on the input binding."""
        stamped = {}
        if self.input_content_type:
            stamped["content-type"] = self.input_content_type
        stamped.update(headers or {})
        return Message.create(payload, stamped)

    def process(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> PipelineResult:
        return self.pipeline.process(self.inbound(payload, headers))


def bootstrap(
    environment: Environment,
    catalog: Optional[FunctionCatalog] = None,
    meters: Optional[MeterCache] = None,
    engine: Optional[ExpressionEvaluator] = None,
) -> Application:
    """
    Run the startup sequence against ``environment``.

    Args:
        environment: Loaded, not yet frozen environment
        catalog: Functions available to the definition (default: built-ins)
        meters: Meter cache for the metric consumers
        engine: Expression evaluator (default: the shared engine)

    Returns:
        The bootstrapped Application

    Raises:
        ConfigurationError: No definition, unknown function, invalid
            properties or a malformed function expression
        ParseError: Malformed function definition
    """
    binding = apply_function_bindings(environment)
    if binding is None:
        raise ConfigurationError(
            f"No function definition configured; set '{FUNCTION_DEFINITION}'",
            context={"property": FUNCTION_DEFINITION},
        )
    apply_content_type_defaults(environment)
    environment.freeze()

    properties = environment.bind(APP_PREFIX, AppProperties)

    context = FunctionContext(
        environment=environment,
        engine=engine or get_engine(),
        beans=MappingProxyType(dict(properties.beans)),
        meters=meters,
    )
    pipeline = FunctionPipeline.build(
        binding.chain,
        catalog or default_catalog(),
        context,
        encode_output=properties.encode_output,
    )

    app = Application(
        environment=environment,
        binding=binding,
        pipeline=pipeline,
        properties=properties,
        input_content_type=binding_content_type(environment, INPUT_BINDING),
        output_content_type=binding_content_type(environment, OUTPUT_BINDING),
    )

    log_startup_banner(
        logger,
        environment.get_property(APP_NAME_PROPERTY, "streamfn"),
        definition=app.definition,
        bindings={k: v for k, v in binding.properties.items() if k != FUNCTION_DEFINITION},
        extra_config={
            "Input content type": app.input_content_type,
            "Output content type": app.output_content_type,
            "Encode output": properties.encode_output,
            "Beans": sorted(properties.beans) or "none",
        },
    )
    return app


__all__ = ["Application", "bootstrap"]
