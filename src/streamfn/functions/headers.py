"""Header enricher and header filter functions."""

import logging
import re
from typing import Iterable, List, Optional, Pattern

from streamfn.enricher import HeaderEnricher
from streamfn.functions.base import FunctionContext, StreamFunction
from streamfn.message import READ_ONLY_HEADERS, Message
from streamfn.properties import HeaderEnricherProperties, HeaderFilterProperties

logger = logging.getLogger(__name__)


class HeaderEnricherFunction(StreamFunction):
    """Adds headers computed from expressions."""

    name = "headerEnricherFunction"
    accepts_text = True

    def __init__(self, properties: HeaderEnricherProperties, context: FunctionContext):
        self.enricher = HeaderEnricher(
            properties.headers,
            overwrite=properties.overwrite,
            engine=context.engine,
            beans=context.beans,
        )
        if not len(self.enricher.spec):
            logger.warning("Header enricher has no headers configured")

    def __call__(self, message: Message) -> Message:
        return self.enricher(message)


def _compile_wildcard(pattern: str) -> Pattern:
    """'*' matches any run of characters; everything else is literal."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


class HeaderFilterFunction(StreamFunction):
    """Removes headers by name or wildcard pattern, or all of them.

    The read-only ``id`` and ``timestamp`` headers are never removed.
    """

    name = "headerFilterFunction"

    def __init__(self, properties: HeaderFilterProperties, context: Optional[FunctionContext] = None):
        self.delete_all = properties.delete_all
        self.patterns: List[Pattern] = [_compile_wildcard(p) for p in properties.remove]
        if not self.delete_all and not self.patterns:
            logger.warning("Header filter has nothing to remove")

    def _matches(self, name: str) -> bool:
        return any(pattern.match(name) for pattern in self.patterns)

    def headers_to_remove(self, names: Iterable[str]) -> List[str]:
        return [
            name
            for name in names
            if name not in READ_ONLY_HEADERS and (self.delete_all or self._matches(name))
        ]

    def __call__(self, message: Message) -> Message:
        return message.without_headers(self.headers_to_remove(message.headers))


def header_enricher_function(context: FunctionContext) -> HeaderEnricherFunction:
    properties = context.environment.bind("header.enricher", HeaderEnricherProperties)
    return HeaderEnricherFunction(properties, context)


def header_filter_function(context: FunctionContext) -> HeaderFilterFunction:
    properties = context.environment.bind("header.filter", HeaderFilterProperties)
    return HeaderFilterFunction(properties, context)


__all__ = [
    "HeaderEnricherFunction",
    "HeaderFilterFunction",
    "header_enricher_function",
    "header_filter_function",
]
