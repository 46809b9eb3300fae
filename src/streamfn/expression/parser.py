"""Tokenizer and recursive-descent parser for message expressions.

Grammar (lowest to highest precedence)::

    expression     := or
    or             := and (("or" | "||") and)*
    and            := not (("and" | "&&") not)*
    not            := ("not" | "!") not | comparison
    comparison     := additive (("==" | "!=" | ">" | ">=" | "<" | "<=") additive)?
    additive       := multiplicative (("+" | "-") multiplicative)*
    multiplicative := unary (("*" | "/" | "%") unary)*
    unary          := "-" unary | postfix
    postfix        := primary ("." member | "?." member | "[" expression "]")*
    member         := IDENT ("(" arguments? ")")?
    primary        := NUMBER | STRING | "true" | "false" | "null"
                    | "@" IDENT
                    | "#"? IDENT "(" arguments? ")"
                    | "payload" | "headers"
                    | "(" expression ")"

Keywords are case-insensitive. Strings use single or double quotes; a
doubled quote inside a string is a literal quote (``'it''s'``).
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from core.errors import ParseError
from streamfn.expression.nodes import (
    BeanReference,
    BinaryOp,
    FunctionCall,
    IndexAccess,
    Literal,
    MethodCall,
    Node,
    PropertyAccess,
    Root,
    UnaryOp,
)

ROOTS = frozenset({"payload", "headers"})
FUNCTIONS = frozenset({"jsonPath"})

_KEYWORD_LITERALS = {"true": True, "false": False, "null": None}
_WORD_OPERATORS = frozenset({"and", "or", "not"})

# Longest operators first so ">=" wins over ">"
_OPERATORS = (
    "?.",
    "==",
    "!=",
    ">=",
    "<=",
    "&&",
    "||",
    ">",
    "<",
    "!",
    "+",
    "-",
    "*",
    "/",
    "%",
    "(",
    ")",
    "[",
    "]",
    ".",
    ",",
    "@",
    "#",
)

_NUMBER = re.compile(r"\d+(\.\d+)?([eE][+-]?\d+)?")
_IDENT = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

_COMPARISONS = frozenset({"==", "!=", ">", ">=", "<", "<="})


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, STRING, IDENT, OP, EOF
    value: object
    position: int


def tokenize(source: str) -> List[Token]:
    """Split expression source into tokens.

    Raises:
        ParseError: On an unterminated string or unexpected character
    """
    tokens: List[Token] = []
    i = 0
    length = len(source)

    while i < length:
        ch = source[i]

        if ch.isspace():
            i += 1
            continue

        if ch in ("'", '"'):
            text, end = _read_string(source, i)
            tokens.append(Token("STRING", text, i))
            i = end
            continue

        number = _NUMBER.match(source, i)
        if number:
            raw = number.group(0)
            value = float(raw) if (number.group(1) or number.group(2)) else int(raw)
            tokens.append(Token("NUMBER", value, i))
            i = number.end()
            continue

        ident = _IDENT.match(source, i)
        if ident:
            tokens.append(Token("IDENT", ident.group(0), i))
            i = ident.end()
            continue

        for op in _OPERATORS:
            if source.startswith(op, i):
                tokens.append(Token("OP", op, i))
                i += len(op)
                break
        else:
            raise ParseError(
                f"Unexpected character '{ch}' at position {i}",
                expression=source,
                position=i,
            )

    tokens.append(Token("EOF", None, length))
    return tokens


def _read_string(source: str, start: int) -> Tuple[str, int]:
    quote = source[start]
    chars = []
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == quote:
            if i + 1 < len(source) and source[i + 1] == quote:
                chars.append(quote)
                i += 2
                continue
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise ParseError(
        f"Unterminated string literal starting at position {start}",
        expression=source,
        position=start,
    )


class Parser:
    """Recursive-descent parser producing an immutable syntax tree."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0

    # -- token helpers -----------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != "EOF":
            self.pos += 1
        return token

    def _is_op(self, *ops: str) -> bool:
        token = self.current
        return token.kind == "OP" and token.value in ops

    def _is_word(self, *words: str) -> bool:
        token = self.current
        return token.kind == "IDENT" and str(token.value).lower() in words

    def _expect_op(self, op: str) -> Token:
        if not self._is_op(op):
            raise self._error(f"Expected '{op}'")
        return self._advance()

    def _expect_ident(self) -> str:
        token = self.current
        if token.kind != "IDENT":
            raise self._error("Expected identifier")
        self._advance()
        return str(token.value)

    def _error(self, message: str) -> ParseError:
        token = self.current
        found = "end of expression" if token.kind == "EOF" else f"'{token.value}'"
        return ParseError(
            f"{message} at position {token.position}, found {found}",
            expression=self.source,
            position=token.position,
        )

    # -- grammar -----------------------------------------------------------

    def parse(self) -> Node:
        if self.current.kind == "EOF":
            raise ParseError("Expression is empty", expression=self.source, position=0)
        node = self._or()
        if self.current.kind != "EOF":
            raise self._error("Unexpected token")
        return node

    def _or(self) -> Node:
        node = self._and()
        while self._is_op("||") or self._is_word("or"):
            self._advance()
            node = BinaryOp("or", node, self._and())
        return node

    def _and(self) -> Node:
        node = self._not()
        while self._is_op("&&") or self._is_word("and"):
            self._advance()
            node = BinaryOp("and", node, self._not())
        return node

    def _not(self) -> Node:
        if self._is_op("!") or self._is_word("not"):
            self._advance()
            return UnaryOp("not", self._not())
        return self._comparison()

    def _comparison(self) -> Node:
        node = self._additive()
        if self.current.kind == "OP" and self.current.value in _COMPARISONS:
            op = str(self._advance().value)
            node = BinaryOp(op, node, self._additive())
        return node

    def _additive(self) -> Node:
        node = self._multiplicative()
        while self._is_op("+", "-"):
            op = str(self._advance().value)
            node = BinaryOp(op, node, self._multiplicative())
        return node

    def _multiplicative(self) -> Node:
        node = self._unary()
        while self._is_op("*", "/", "%"):
            op = str(self._advance().value)
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._is_op("-"):
            self._advance()
            return UnaryOp("-", self._unary())
        return self._postfix()

    def _postfix(self) -> Node:
        node = self._primary()
        while True:
            if self._is_op(".", "?."):
                null_safe = self._advance().value == "?."
                name = self._expect_ident()
                if self._is_op("("):
                    node = MethodCall(node, name, self._arguments(), null_safe)
                else:
                    node = PropertyAccess(node, name, null_safe)
            elif self._is_op("["):
                self._advance()
                index = self._or()
                self._expect_op("]")
                node = IndexAccess(node, index)
            else:
                return node

    def _arguments(self) -> Tuple[Node, ...]:
        self._expect_op("(")
        args: List[Node] = []
        if not self._is_op(")"):
            args.append(self._or())
            while self._is_op(","):
                self._advance()
                args.append(self._or())
        self._expect_op(")")
        return tuple(args)

    def _primary(self) -> Node:
        token = self.current

        if token.kind in ("NUMBER", "STRING"):
            self._advance()
            return Literal(token.value)

        if self._is_op("("):
            self._advance()
            node = self._or()
            self._expect_op(")")
            return node

        if self._is_op("@"):
            self._advance()
            return BeanReference(self._expect_ident())

        if self._is_op("#"):
            self._advance()
            return self._function_call(self._expect_ident())

        if token.kind == "IDENT":
            name = str(token.value)
            lowered = name.lower()
            if lowered in _KEYWORD_LITERALS:
                self._advance()
                return Literal(_KEYWORD_LITERALS[lowered])
            if lowered in _WORD_OPERATORS:
                raise self._error("Unexpected operator")
            self._advance()
            if self._is_op("("):
                return self._function_call(name)
            if name in ROOTS:
                return Root(name)
            raise ParseError(
                f"Unknown identifier '{name}' at position {token.position}; "
                f"expected one of {sorted(ROOTS)}",
                expression=self.source,
                position=token.position,
            )

        raise self._error("Unexpected token")

    def _function_call(self, name: str) -> Node:
        position = self.current.position
        if name not in FUNCTIONS:
            raise ParseError(
                f"Unknown function '{name}' at position {position}",
                expression=self.source,
                position=position,
            )
        return FunctionCall(name, self._arguments())


def parse_expression(source: Optional[str]) -> Node:
    """Parse expression source into a syntax tree.

    Raises:
        ParseError: If the source is empty or malformed
    """
    if source is None:
        raise ParseError("Expression is empty", expression="", position=0)
    try:
        return Parser(source).parse()
    except RecursionError as e:
        raise ParseError("Expression is nested too deeply", expression=source, cause=e) from e


__all__ = ["Token", "tokenize", "Parser", "parse_expression", "ROOTS", "FUNCTIONS"]
