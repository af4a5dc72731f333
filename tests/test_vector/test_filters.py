"""Unit tests for filter expression parsing and Qdrant translation."""

import pytest
from qdrant_client.http import models

from code_vector_store.vector.errors import FilterSyntaxError, InvalidRequestError
from code_vector_store.vector.filters import (
    FieldEquals,
    FilterExpression,
    parse_filter,
    to_qdrant_filter,
)


@pytest.mark.parametrize("text", [None, "", "   "])
def test_parse_filter_empty_returns_none(text: str | None) -> None:
    """Blank input means no filter."""
    assert parse_filter(text) is None


def test_parse_filter_single_clause() -> None:
    """A single equality clause parses into one FieldEquals."""
    expression = parse_filter('relativePath == "src/a.ts"')

    assert expression == FilterExpression(
        clauses=(FieldEquals(field="relativePath", value="src/a.ts"),)
    )


def test_parse_filter_tolerates_missing_whitespace() -> None:
    expression = parse_filter('relativePath=="src/a.ts"')

    assert expression is not None
    assert expression.clauses[0].value == "src/a.ts"


@pytest.mark.parametrize("joiner", ["&&", "and", "AND"])
def test_parse_filter_conjunction(joiner: str) -> None:
    """Clauses joined by AND produce a conjunction in order."""
    expression = parse_filter(
        f'relativePath == "src/a.ts" {joiner} metadata.language == "typescript"'
    )

    assert expression is not None
    assert [clause.field for clause in expression.clauses] == [
        "relativePath",
        "metadata.language",
    ]
    assert expression.clauses[1].value == "typescript"


def test_parse_filter_unescapes_literals() -> None:
    expression = parse_filter(r'content == "say \"hi\" \\ bye"')

    assert expression is not None
    assert expression.clauses[0].value == 'say "hi" \\ bye'


@pytest.mark.parametrize(
    "text",
    [
        'relativePath != "src/a.ts"',
        "relativePath == src/a.ts",
        "startLine == 10",
        'relativePath == "a" || relativePath == "b"',
        'relativePath == "a" and',
        'relativePath in ["a", "b"]',
        '"src/a.ts" == relativePath',
        'and == "x"',
        'relativePath == "unterminated',
    ],
)
def test_parse_filter_rejects_unsupported_syntax(text: str) -> None:
    """Anything outside the grammar raises FilterSyntaxError."""
    with pytest.raises(FilterSyntaxError) as exc_info:
        parse_filter(text)

    assert exc_info.value.expression == text


def test_filter_syntax_error_is_invalid_request() -> None:
    with pytest.raises(InvalidRequestError):
        parse_filter("relativePath ~= 'x'")


def test_to_qdrant_filter_none() -> None:
    assert to_qdrant_filter(None) is None


def test_to_qdrant_filter_builds_must_conditions() -> None:
    """Each clause becomes an exact MatchValue condition under must."""
    expression = FilterExpression(
        clauses=(
            FieldEquals(field="relativePath", value="src/a.ts"),
            FieldEquals(field="fileExtension", value=".ts"),
        )
    )

    qdrant_filter = to_qdrant_filter(expression)

    assert isinstance(qdrant_filter, models.Filter)
    assert qdrant_filter.must == [
        models.FieldCondition(
            key="relativePath", match=models.MatchValue(value="src/a.ts")
        ),
        models.FieldCondition(key="fileExtension", match=models.MatchValue(value=".ts")),
    ]
