"""``jsonPath(value, '$.path')`` support backed by jsonpath-ng.

A definite path (no wildcard, deep scan, filter, slice or union) yields the
single matched value and fails when nothing matches. An indefinite path
always yields a list, which may be empty.
"""

import re
from functools import lru_cache
from typing import Any, Optional

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from core.errors import EvaluationError, ParseError
from streamfn.expression.values import parse_json

_INDEFINITE = re.compile(r"\*|\.\.|\?\(|,|:")


def is_definite(path: str) -> bool:
    return _INDEFINITE.search(path) is None


@lru_cache(maxsize=256)
def compile_path(path: str):
    try:
        return parse_jsonpath(path)
    except (JSONPathError, ValueError) as e:
        raise ParseError(f"Invalid JSON path '{path}': {e}", expression=path, cause=e) from e


def json_path(value: Any, path: Any, expression: Optional[str] = None) -> Any:
    """Evaluate a JSON path against a structured value or JSON text.

    Raises:
        ParseError: If the path is malformed
        EvaluationError: If a definite path matches nothing
        ExpressionTypeError: If the value is not JSON
    """
    if not isinstance(path, str):
        raise ParseError("jsonPath requires a string path argument", expression=expression)

    data = parse_json(value, expression)
    matches = [match.value for match in compile_path(path).find(data)]

    if not is_definite(path):
        return matches
    if not matches:
        raise EvaluationError(
            f"No results for path: {path}",
            expression=expression,
            context={"path": path},
        )
    return matches[0]


__all__ = ["json_path", "is_definite", "compile_path"]
