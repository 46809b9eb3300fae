"""
Message expression language.

A small, fixed grammar evaluated against a message's payload, headers and
the process-wide bean references:

    payload                      the message payload
    payload.field                field of a structured or JSON payload
    headers['name'], headers.x   header lookup
    'text', 42, true, null       literals
    @name                        bean reference
    payload.length() > 5         string methods and comparisons
    jsonPath(payload, '$.a.b')   JSON extraction (also #jsonPath)
"""

from streamfn.expression.engine import (
    Expression,
    ExpressionContext,
    ExpressionEngine,
    get_engine,
)
from streamfn.expression.jsonpath import json_path
from streamfn.expression.parser import parse_expression, tokenize
from streamfn.expression.values import to_text

__all__ = [
    "Expression",
    "ExpressionContext",
    "ExpressionEngine",
    "get_engine",
    "json_path",
    "parse_expression",
    "tokenize",
    "to_text",
]
