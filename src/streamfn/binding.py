"""Function composition binding.

A function definition names the chain of functions a deployment runs:

    upper|filterFunction        pipe separated
    upper,filterFunction        comma separated (only when no pipe is present)
    'upper|filterFunction'      optionally quoted as a whole

The chain's composite name is the concatenation of its function names. At
startup the external ``input``/``output`` bindings are mapped onto the
composite function's ``<composite>-in-0``/``<composite>-out-0`` binding
names, before anything reads binding configuration.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from config.environment import Environment
from core.errors import EmptyFunctionNameError, ParseError
from core.logging import log_with_context
from streamfn.coercion import OCTET_STREAM

logger = logging.getLogger(__name__)

FUNCTION_DEFINITION = "spring.cloud.function.definition"
DEPRECATED_FUNCTION_DEFINITION = "spring.cloud.stream.function.definition"

BINDINGS_PREFIX = "spring.cloud.stream.bindings"
FUNCTION_BINDINGS_PREFIX = "spring.cloud.stream.function.bindings"

INPUT_BINDING = "input"
OUTPUT_BINDING = "output"

FUNCTION_BINDINGS_SOURCE = "functionBindings"
CONTENT_TYPE_DEFAULTS_SOURCE = "contentTypeDefaults"

_QUOTES = ("'", '"')


@dataclass(frozen=True)
class FunctionChain:
    """Ordered, non-empty sequence of function names."""

    names: Tuple[str, ...]

    def __post_init__(self):
        if not self.names:
            raise ParseError("Function chain must contain at least one function")
        if any(not name or not name.strip() for name in self.names):
            raise EmptyFunctionNameError("|".join(self.names))

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    @property
    def composite_name(self) -> str:
        return "".join(self.names)

    @property
    def definition(self) -> str:
        """Normalized, pipe-separated definition."""
        return "|".join(self.names)

    @property
    def input_binding_name(self) -> str:
        return f"{self.composite_name}-in-0"

    @property
    def output_binding_name(self) -> str:
        return f"{self.composite_name}-out-0"


@dataclass(frozen=True)
class FunctionBinding:
    """Outcome of the startup binding rewrite."""

    chain: FunctionChain
    properties: Dict[str, str] = field(default_factory=dict)

    @property
    def composite_name(self) -> str:
        return self.chain.composite_name


def _strip_enclosing_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        return text[1:-1].strip()
    return text


def parse_function_definition(definition: Optional[str]) -> FunctionChain:
    """Parse a function definition string into a FunctionChain.

    Raises:
        ParseError: If the definition is empty
        EmptyFunctionNameError: If any element is empty after trimming
    """
    if definition is None or not str(definition).strip():
        raise ParseError("Function definition is empty", expression=definition or "")

    text = _strip_enclosing_quotes(str(definition).strip())
    if not text:
        raise ParseError("Function definition is empty", expression=str(definition))

    if "|" in text:
        parts = text.split("|")
    elif "," in text:
        parts = text.split(",")
    else:
        parts = [text]

    names = tuple(part.strip() for part in parts)
    if any(not name for name in names):
        raise EmptyFunctionNameError(str(definition))
    return FunctionChain(names)


def bind(definition: str) -> Tuple[FunctionChain, str]:
    """Return the function chain and its composite binding name."""
    chain = parse_function_definition(definition)
    return chain, chain.composite_name


def _binding_configured(environment: Environment, binding: str) -> bool:
    key = f"{BINDINGS_PREFIX}.{binding}"
    return environment.contains_property(key) or bool(environment.get_subproperties(key))


def resolve_function_definition(environment: Environment) -> Optional[str]:
    """Read the function definition, honoring the deprecated property name.

    When both names are set the deprecated one wins; startup then writes its
    value back under the current name.
    """
    if environment.contains_property(DEPRECATED_FUNCTION_DEFINITION):
        logger.error(
            "Property '%s' is deprecated and will be removed, use '%s' instead",
            DEPRECATED_FUNCTION_DEFINITION,
            FUNCTION_DEFINITION,
            extra={"property": DEPRECATED_FUNCTION_DEFINITION},
        )
        return environment.get_property(DEPRECATED_FUNCTION_DEFINITION)

    return environment.get_property(FUNCTION_DEFINITION)


def apply_function_bindings(environment: Environment) -> Optional[FunctionBinding]:
    """Startup hook: normalize the function definition and map bindings.

    Writes, with highest priority:

    - ``spring.cloud.function.definition`` as ``a|b|c``
    - ``spring.cloud.stream.function.bindings.<composite>-in-0 = input``
      when an ``input`` binding is configured
    - ``spring.cloud.stream.function.bindings.<composite>-out-0 = output``
      when an ``output`` binding is configured

    Returns:
        The binding, or None when no function definition is configured

    Raises:
        ParseError: If the definition is malformed (fatal at startup)
    """
    definition = resolve_function_definition(environment)
    if definition is None:
        logger.debug("No function definition configured, skipping binding rewrite")
        return None

    chain, composite_name = bind(definition)

    properties = {FUNCTION_DEFINITION: chain.definition}
    if _binding_configured(environment, INPUT_BINDING):
        properties[f"{FUNCTION_BINDINGS_PREFIX}.{chain.input_binding_name}"] = INPUT_BINDING
    if _binding_configured(environment, OUTPUT_BINDING):
        properties[f"{FUNCTION_BINDINGS_PREFIX}.{chain.output_binding_name}"] = OUTPUT_BINDING

    environment.add_first(FUNCTION_BINDINGS_SOURCE, properties)

    log_with_context(
        logger,
        logging.INFO,
        "Function bindings applied",
        function_definition=chain.definition,
        composite_name=composite_name,
        functions=list(chain.names),
    )
    return FunctionBinding(chain, properties)


def apply_content_type_defaults(environment: Environment) -> Dict[str, str]:
    """Startup hook: default the input/output binding content type.

    Bindings without an explicit ``contentType`` get
    ``application/octet-stream``, added with lowest priority.
    """
    defaults: Dict[str, str] = {}
    for binding in (INPUT_BINDING, OUTPUT_BINDING):
        prefix = f"{BINDINGS_PREFIX}.{binding}"
        explicit = any(
            environment.contains_property(f"{prefix}.{name}")
            for name in ("contentType", "content-type", "content_type")
        )
        if not explicit:
            defaults[f"{prefix}.contentType"] = OCTET_STREAM

    if defaults:
        environment.add_last(CONTENT_TYPE_DEFAULTS_SOURCE, defaults)
        logger.debug("Defaulted binding content types: %s", sorted(defaults))
    return defaults


def binding_content_type(environment: Environment, binding: str) -> Optional[str]:
    prefix = f"{BINDINGS_PREFIX}.{binding}"
    for name in ("contentType", "content-type", "content_type"):
        value = environment.get_property(f"{prefix}.{name}")
        if value is not None:
            return str(value)
    return None


__all__ = [
    "FUNCTION_DEFINITION",
    "DEPRECATED_FUNCTION_DEFINITION",
    "BINDINGS_PREFIX",
    "FUNCTION_BINDINGS_PREFIX",
    "INPUT_BINDING",
    "OUTPUT_BINDING",
    "FunctionChain",
    "FunctionBinding",
    "parse_function_definition",
    "bind",
    "resolve_function_definition",
    "apply_function_bindings",
    "apply_content_type_defaults",
    "binding_content_type",
]
