"""Multi-term, multi-column text search filter."""

from typing import Any, List, Optional

from sqlalchemy import ColumnElement, Enum, String, TypeDecorator, and_, cast, or_

from fastapi_filterset.registry import FilterBuilderFn

WILDCARD = "*"
LIKE_ESCAPE = "\\"

_MATCH_MODES = ("wildcard", "contains", "prefix")


def _is_string_column(col: ColumnElement[Any]) -> bool:
    """
    Check if a column has a string type in the database.

    Type decorators such as SQLModel's AutoString are unwrapped to the type
    they store as. Enum columns subclass String in SQLAlchemy but some
    backends (PostgreSQL) refuse ILIKE on them, so they count as non-string.

    Args:
        col: SQLAlchemy column element

    Returns:
        bool: True if the column is a string/text type
    """
    col_type = getattr(col, "type", None)
    if isinstance(col_type, TypeDecorator):
        col_type = col_type.impl_instance
    return isinstance(col_type, String) and not isinstance(col_type, Enum)


def _as_text(col: ColumnElement[Any]) -> ColumnElement[Any]:
    if _is_string_column(col):
        return col
    return cast(col, String)


def _escape_like(term: str) -> str:
    for char in (LIKE_ESCAPE, "%", "_"):
        term = term.replace(char, LIKE_ESCAPE + char)
    return term


def split_terms(query: str) -> List[str]:
    """Lower-case a search string and split it on whitespace."""
    return query.lower().split()


def term_pattern(term: str, match: str = "wildcard") -> str:
    """
    Translate one search term to a LIKE pattern.

    LIKE metacharacters typed by the user are escaped, ``*`` becomes ``%``
    and runs of ``%`` collapse to one.

    Match modes:
        wildcard: a term with ``*`` is anchored as written (``ann*`` starts
            with "ann", ``*son`` ends with "son"); a bare term is ``%term%``
        contains: always ``%term%``
        prefix: always ``term%``

    Args:
        term: Single search term
        match: "wildcard", "contains" or "prefix"

    Returns:
        str: LIKE pattern, to be used with ``escape=LIKE_ESCAPE``
    """
    anchored = match == "wildcard" and WILDCARD in term
    tokens = [] if match == "prefix" or anchored else ["%"]
    for i, piece in enumerate(term.split(WILDCARD)):
        if i:
            tokens.append("%")
        if piece:
            tokens.append(_escape_like(piece))
    if not anchored:
        tokens.append("%")
    # collapse adjacent wildcards
    return "".join(
        tok for i, tok in enumerate(tokens) if not (tok == "%" and i and tokens[i - 1] == "%")
    )


def search_condition(
    query: str, columns: List[ColumnElement[Any]], match: str = "wildcard"
) -> Optional[ColumnElement[bool]]:
    """
    Build the search predicate for a query string.

    Every term must match (AND); a term matches when any column matches it (OR).

    Args:
        query: Raw search string, e.g. ``"ann* bob"``
        columns: Columns to search in
        match: "wildcard", "contains" or "prefix"

    Returns:
        Optional[ColumnElement[bool]]: Predicate, or None when the string has no terms
    """
    terms = split_terms(query)
    if not terms:
        return None

    per_term = []
    for term in terms:
        pattern = term_pattern(term, match)
        per_term.append(
            or_(*(_as_text(col).ilike(pattern, escape=LIKE_ESCAPE) for col in columns))
        )
    return and_(*per_term)


def search_filter(*columns: ColumnElement[Any], match: str = "wildcard") -> FilterBuilderFn:
    """
    Builder factory for a free-text search filter.

    Example:
        registry.register(
            "search_query",
            search_filter(Student.first_name, Student.last_name, Student.email),
        )
    """
    if not columns:
        raise ValueError("search_filter needs at least one column")
    if match not in _MATCH_MODES:
        raise ValueError(f"Invalid match: {match}. Use: {', '.join(_MATCH_MODES)}")

    def _build(value: Any) -> Optional[ColumnElement[bool]]:
        return search_condition(str(value), list(columns), match)

    return _build
