"""
streamfn: composable message functions.

Messages flow through a chain of small functions named by a definition such
as ``headerEnricherFunction|filterFunction``:

    from config import load_environment
    from streamfn import bootstrap

    app = bootstrap(load_environment("application.yaml"))
    result = app.process(b'{"kind": "order"}')

Building blocks:
    Message              immutable payload + read-only headers
    ExpressionEngine     the expression language used by every function
    enrich / coerce      header enrichment and content-type payload coercion
    bind                 function definition -> chain + composite name
    FunctionPipeline     runs a chain per message
"""

from streamfn.message import Message
from streamfn.expression import ExpressionContext, ExpressionEngine, get_engine
from streamfn.enricher import HeaderEnricher, HeaderSpec, enrich, parse_header_spec
from streamfn.coercion import Direction, coerce
from streamfn.binding import FunctionChain, apply_function_bindings, bind
from streamfn.kv import parse_comma_delimited_key_value_pairs
from streamfn.catalog import FunctionCatalog, default_catalog
from streamfn.pipeline import FunctionPipeline, PipelineResult
from streamfn.app import Application, bootstrap

__version__ = "0.1.0"

__all__ = [
    "Message",
    "ExpressionContext",
    "ExpressionEngine",
    "get_engine",
    "HeaderEnricher",
    "HeaderSpec",
    "enrich",
    "parse_header_spec",
    "Direction",
    "coerce",
    "FunctionChain",
    "apply_function_bindings",
    "bind",
    "parse_comma_delimited_key_value_pairs",
    "FunctionCatalog",
    "default_catalog",
    "FunctionPipeline",
    "PipelineResult",
    "Application",
    "bootstrap",
]
