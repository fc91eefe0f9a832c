"""Builder factories for common filter patterns.

Each factory returns a one-argument builder suitable for
``FilterRegistry.register``. Builders only produce SQLAlchemy expressions, so
every value ends up as a bound parameter.

Example usage:
    from fastapi_filterset import builders
    from fastapi_filterset.normalizers import interval, to_bool, to_datetime, to_int

    registry.register("with_country_id", builders.any_of(Student.country_id),
                      normalizer=to_int, multiple=True)
    registry.register("with_created_at_gte", builders.on_or_after(Student.created_at),
                      normalizer=to_datetime)
    registry.register("created_between", builders.within(Student.created_at),
                      normalizer=interval(to_datetime))
    registry.register("with_email", builders.with_related(
        Email.student_id == Student.id, match=lambda v: Email.address == v))
    registry.register("has_email", builders.with_related(Email.student_id == Student.id),
                      normalizer=to_bool)
"""

from typing import Any, Callable, Optional, Sequence, Tuple

from sqlalchemy import ColumnElement, and_, exists, not_

from fastapi_filterset.normalizers import to_bool
from fastapi_filterset.registry import FilterBuilderFn

RelatedMatchFn = Callable[[Any], ColumnElement[bool]]


def _values(value: Any) -> Sequence[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def equals(column: ColumnElement[Any]) -> FilterBuilderFn:
    """Exact match on a column."""

    def _build(value: Any) -> ColumnElement[bool]:
        return column == value

    return _build


def any_of(column: ColumnElement[Any]) -> FilterBuilderFn:
    """
    Match any of one or more values.

    A single value compiles to ``=``, several to ``IN``, so the same filter
    serves a single select and a multi-select.
    """

    def _build(value: Any) -> Optional[ColumnElement[bool]]:
        values = _values(value)
        if not values:
            return None
        if len(values) == 1:
            return column == values[0]
        return column.in_(values)

    return _build


def none_of(column: ColumnElement[Any]) -> FilterBuilderFn:
    """Exclude one or more values."""

    def _build(value: Any) -> Optional[ColumnElement[bool]]:
        values = _values(value)
        if not values:
            return None
        return not_(column.in_(values))

    return _build


def flag(column: ColumnElement[Any]) -> FilterBuilderFn:
    """Boolean column filter; raw strings such as ``"false"`` are coerced with ``to_bool``."""

    def _build(value: Any) -> ColumnElement[bool]:
        return column == to_bool(value)

    return _build


def on_or_after(column: ColumnElement[Any]) -> FilterBuilderFn:
    """Inclusive lower bound (``>=``)."""

    def _build(value: Any) -> ColumnElement[bool]:
        return column >= value

    return _build


def before(column: ColumnElement[Any]) -> FilterBuilderFn:
    """Exclusive upper bound (``<``)."""

    def _build(value: Any) -> ColumnElement[bool]:
        return column < value

    return _build


def within(column: ColumnElement[Any]) -> FilterBuilderFn:
    """
    Semi-open interval ``[start, end)``; use with ``normalizer=interval(...)``.

    A missing side leaves the interval unbounded on that side.
    """

    def _build(value: Tuple[Optional[Any], Optional[Any]]) -> Optional[ColumnElement[bool]]:
        start, end = value
        conditions = []
        if start is not None:
            conditions.append(column >= start)
        if end is not None:
            conditions.append(column < end)
        if not conditions:
            return None
        return and_(*conditions)

    return _build


def with_related(
    link: ColumnElement[bool], match: Optional[RelatedMatchFn] = None
) -> FilterBuilderFn:
    """
    Existence filter on related rows, compiled to a correlated ``EXISTS``.

    Args:
        link: Join condition between the related table and the queried one,
            e.g. ``Email.student_id == Student.id``
        match: Optional callable turning the filter value into a condition on
            the related table. Without it the value is a boolean: true keeps
            rows that have related rows, false keeps rows that have none.

    Returns:
        FilterBuilderFn: Builder for the registry
    """

    def _build(value: Any) -> ColumnElement[bool]:
        if match is None:
            condition = exists().where(link)
            return condition if to_bool(value) else not_(condition)
        return exists().where(link, match(value))

    return _build


def without_related(
    link: ColumnElement[bool], match: Optional[RelatedMatchFn] = None
) -> FilterBuilderFn:
    """
    Non-existence filter on related rows, compiled to ``NOT EXISTS``.

    With ``match`` the value selects which related rows must be absent;
    without it a true value keeps rows with no related rows at all.
    """
    positive = with_related(link, match)

    def _build(value: Any) -> ColumnElement[bool]:
        if match is None:
            return positive(not to_bool(value))
        return not_(positive(value))

    return _build
