"""Header enrichment from ``name=expression`` specifications.

A header spec is parsed once at startup:

    foo='bar'
    buz=payload
    jaz=@value

Each record is split on its first ``=``; the name and the expression are
trimmed, and quotes inside the expression belong to the expression.

Enrichment evaluates every expression against the incoming message (never
against headers set earlier in the same pass). With ``overwrite`` false a
header already present on the incoming message keeps its value; otherwise
the evaluated value replaces it. Among duplicate names in one spec the last
declared wins. A failing expression only costs its own header.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from core.errors import EvaluationError, ParseError
from core.logging import log_exception, log_with_context
from core.types import ExpressionEvaluator
from streamfn.expression import ExpressionContext, get_engine
from streamfn.message import Message

logger = logging.getLogger(__name__)

_COMMENT_PREFIXES = ("#", "!")


@dataclass(frozen=True)
class HeaderSpec:
    """Ordered (header name, expression source) pairs."""

    entries: Tuple[Tuple[str, str], ...] = ()

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.entries)


@dataclass(frozen=True)
class HeaderFailure:
    name: str
    expression: str
    error: EvaluationError


@dataclass(frozen=True)
class EnrichmentResult:
    message: Message
    applied: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    failures: Tuple[HeaderFailure, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures


def _parse_record(record: str, line_number: int, text: str) -> Tuple[str, str]:
    name, sep, expression = record.partition("=")
    if not sep:
        raise ParseError(
            f"Header spec line {line_number} is not of the form name=expression: {record!r}",
            expression=text,
        )
    name = name.strip()
    if not name:
        raise ParseError(
            f"Header spec line {line_number} has an empty header name",
            expression=text,
        )
    return name, expression.strip()


def parse_header_spec(spec: Union[str, Mapping, HeaderSpec, None]) -> HeaderSpec:
    """Parse header spec text (one ``name=expression`` per line) or a mapping.

    Blank lines and lines starting with ``#`` or ``!`` are ignored.

    Raises:
        ParseError: If a record has no ``=`` or an empty name
    """
    if spec is None:
        return HeaderSpec()
    if isinstance(spec, HeaderSpec):
        return spec
    if isinstance(spec, Mapping):
        entries = []
        for name, expression in spec.items():
            name = str(name).strip()
            if not name:
                raise ParseError("Header spec has an empty header name")
            entries.append((name, str(expression).strip()))
        return HeaderSpec(tuple(entries))

    entries = []
    for line_number, line in enumerate(str(spec).splitlines(), start=1):
        record = line.strip()
        if not record or record.startswith(_COMMENT_PREFIXES):
            continue
        entries.append(_parse_record(record, line_number, str(spec)))
    return HeaderSpec(tuple(entries))


def enrich_with_report(
    message: Message,
    spec: Union[str, Mapping, HeaderSpec],
    overwrite: bool = False,
    engine: Optional[ExpressionEvaluator] = None,
    beans: Optional[Mapping[str, Any]] = None,
) -> EnrichmentResult:
    """Apply a header spec and report what was set, skipped and failed."""
    spec = parse_header_spec(spec)
    engine = engine or get_engine()
    context = ExpressionContext.for_message(message, beans)

    values: Dict[str, Any] = {}
    skipped: List[str] = []
    failures: List[HeaderFailure] = []

    for name, source in spec:
        if not overwrite and name in message.headers:
            skipped.append(name)
            continue
        try:
            value = engine.evaluate(source, context)
        except EvaluationError as e:
            log_exception(
                logger,
                e,
                f"Header expression failed, header '{name}' not set",
                level=logging.WARNING,
                include_traceback=False,
                header=name,
                expression=source,
            )
            failures.append(HeaderFailure(name, source, e))
            continue
        if value is None:
            skipped.append(name)
            continue
        # Later duplicates replace earlier ones
        values.pop(name, None)
        values[name] = value

    if values:
        log_with_context(
            logger,
            logging.DEBUG,
            "Headers enriched",
            headers_set=len(values),
            headers_failed=len(failures),
        )

    enriched = message.with_headers(values) if values else message
    return EnrichmentResult(
        message=enriched,
        applied=tuple(values),
        skipped=tuple(skipped),
        failures=tuple(failures),
    )


def enrich(
    message: Message,
    spec: Union[str, Mapping, HeaderSpec],
    overwrite: bool = False,
    engine: Optional[ExpressionEvaluator] = None,
    beans: Optional[Mapping[str, Any]] = None,
) -> Message:
    """Return a copy of ``message`` with the spec's headers applied."""
    return enrich_with_report(message, spec, overwrite, engine, beans).message


class HeaderEnricher:
    """A configured header spec bound to an engine and bean references."""

    def __init__(
        self,
        spec: Union[str, Mapping, HeaderSpec],
        overwrite: bool = False,
        engine: Optional[ExpressionEvaluator] = None,
        beans: Optional[Mapping[str, Any]] = None,
    ):
        self.spec = parse_header_spec(spec)
        self.overwrite = overwrite
        self.engine = engine or get_engine()
        self.beans = beans

    def __repr__(self) -> str:
        return f"HeaderEnricher(headers={list(self.spec.names)}, overwrite={self.overwrite})"

    def __call__(self, message: Message) -> Message:
        return enrich(message, self.spec, self.overwrite, self.engine, self.beans)


__all__ = [
    "HeaderSpec",
    "HeaderFailure",
    "EnrichmentResult",
    "HeaderEnricher",
    "parse_header_spec",
    "enrich",
    "enrich_with_report",
]
