"""Filter expression parsing and translation to Qdrant filters.

Supported grammar::

    expression := clause ( ("&&" | "and" | "AND") clause )*
    clause     := field "==" string
    field      := identifier ( "." identifier )*
    string     := double-quoted literal, backslash escapes allowed

Example:
    relativePath == "src/a.ts" && metadata.language == "typescript"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from qdrant_client.http import models

from code_vector_store.vector.errors import FilterSyntaxError

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<eq>==)
    | (?P<and>&&)
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    """,
    re.VERBOSE,
)
_AND_KEYWORDS = frozenset({"and", "AND"})
_ESCAPE_PATTERN = re.compile(r"\\(.)")


@dataclass(frozen=True)
class FieldEquals:
    """Exact string equality on one payload field."""

    field: str
    value: str


@dataclass(frozen=True)
class FilterExpression:
    """Conjunction of equality clauses."""

    clauses: tuple[FieldEquals, ...]


def parse_filter(text: str | None) -> FilterExpression | None:
    """Parse a filter expression.

    Args:
        text: Expression text. None or blank means no filter.

    Returns:
        The parsed expression, or None for an empty input.

    Raises:
        FilterSyntaxError: If the text does not match the grammar.
    """
    if text is None or not text.strip():
        return None

    tokens = _tokenize(text)
    clauses: list[FieldEquals] = []
    position = 0
    while True:
        if position + 3 > len(tokens):
            raise FilterSyntaxError(text, "expected `field == \"value\"`")
        (field_kind, field_name), (op_kind, _), (value_kind, raw_value) = tokens[
            position : position + 3
        ]
        if field_kind != "ident" or field_name in _AND_KEYWORDS:
            raise FilterSyntaxError(text, f"expected a field name, got {field_name!r}")
        if op_kind != "eq":
            raise FilterSyntaxError(text, "only `==` comparisons are supported")
        if value_kind != "string":
            raise FilterSyntaxError(text, "only double-quoted string literals are supported")
        clauses.append(FieldEquals(field=field_name, value=_unquote(raw_value)))
        position += 3

        if position == len(tokens):
            return FilterExpression(clauses=tuple(clauses))
        kind, value = tokens[position]
        if kind == "and" or (kind == "ident" and value in _AND_KEYWORDS):
            position += 1
            continue
        raise FilterSyntaxError(text, f"unexpected token {value!r}; only AND is supported")


def to_qdrant_filter(expression: FilterExpression | None) -> models.Filter | None:
    """Translate a parsed expression into a Qdrant filter."""
    if expression is None:
        return None
    return models.Filter(
        must=[
            models.FieldCondition(
                key=clause.field,
                match=models.MatchValue(value=clause.value),
            )
            for clause in expression.clauses
        ]
    )


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise FilterSyntaxError(text, f"unexpected character at offset {position}")
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append((kind, match.group()))
        position = match.end()
    return tokens


def _unquote(raw: str) -> str:
    return _ESCAPE_PATTERN.sub(r"\1", raw[1:-1])
