"""
Function catalog.

Maps function names (the names used in a function definition such as
``headerEnricherFunction|filterFunction``) to factories that build the
configured function from a FunctionContext.
"""

import logging
from typing import Callable, Dict, List, Optional

from core.errors import ConfigurationError
from streamfn.coercion import byte_array_text_to_string
from streamfn.functions import (
    CallableFunction,
    FunctionContext,
    StreamFunction,
    analytics_consumer,
    counter_consumer,
    filter_function,
    header_enricher_function,
    header_filter_function,
    log_consumer,
    transform_function,
)

logger = logging.getLogger(__name__)

FunctionFactory = Callable[[FunctionContext], StreamFunction]


class FunctionCatalog:
    """Registry of function factories by name."""

    def __init__(self):
        self._factories: Dict[str, FunctionFactory] = {}

        logger.debug("FunctionCatalog initialized")

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def register(self, name: str, factory: FunctionFactory) -> None:
        """
        Register a function factory.

        Args:
            name: Function name used in definitions
            factory: Callable building the function from a FunctionContext
        """
        if not name or not name.strip():
            raise ConfigurationError("Function name must not be empty")

        if name in self._factories:
            logger.warning(
                "Overwriting function registration",
                extra={"function_name": name},
            )

        self._factories[name] = factory
        logger.debug("Registered function", extra={"function_name": name})

    def unregister(self, name: str) -> Optional[FunctionFactory]:
        """
        Unregister a function by name.

        Returns:
            Removed factory or None if not found
        """
        factory = self._factories.pop(name, None)
        if factory:
            logger.debug("Unregistered function", extra={"function_name": name})
        return factory

    def get(self, name: str) -> Optional[FunctionFactory]:
        """Get factory by name."""
        return self._factories.get(name)

    def list_functions(self) -> List[str]:
        """Get all registered function names, sorted."""
        return sorted(self._factories)

    def clear(self) -> None:
        """Remove all functions."""
        self._factories.clear()

    def create(self, name: str, context: FunctionContext) -> StreamFunction:
        """
        Build the named function.

        Raises:
            ConfigurationError: If no function is registered under ``name``
                or its properties do not validate
        """
        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown function '{name}'",
                context={
                    "function_name": name,
                    "functions": self.list_functions(),
                },
            )
        function = factory(context)
        if not isinstance(function, StreamFunction):
            function = CallableFunction(name, function)
        return function


def _byte_array_text_to_string(context: FunctionContext) -> StreamFunction:
    return CallableFunction("byteArrayTextToString", byte_array_text_to_string)


def default_catalog() -> FunctionCatalog:
    """A catalog holding the built-in functions."""
    catalog = FunctionCatalog()
    catalog.register("byteArrayTextToString", _byte_array_text_to_string)
    catalog.register("headerEnricherFunction", header_enricher_function)
    catalog.register("headerFilterFunction", header_filter_function)
    catalog.register("filterFunction", filter_function)
    catalog.register("transformFunction", transform_function)
    catalog.register("counterConsumer", counter_consumer)
    catalog.register("analyticsConsumer", analytics_consumer)
    catalog.register("logConsumer", log_consumer)
    return catalog


__all__ = ["FunctionCatalog", "FunctionFactory", "default_catalog"]
