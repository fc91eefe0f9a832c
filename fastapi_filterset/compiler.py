"""Compile a FilterSet into WHERE clauses on a SQLAlchemy Select."""

import logging
from collections.abc import Mapping
from typing import List, Union

from sqlalchemy import ColumnElement, Select

from fastapi_filterset.exceptions import UnknownFilterError
from fastapi_filterset.models import FilterSet
from fastapi_filterset.registry import FilterRegistry

logger = logging.getLogger(__name__)


class QueryCompiler:
    """
    Applies named filters to a query.

    Every predicate built from the FilterSet is AND'ed onto the query in a
    single ``where()`` call. The input Select is never mutated; when nothing
    applies the very same Select is returned.

    Handling of unknown filter names is an explicit choice:
    ``strict_mode=True`` raises UnknownFilterError, ``strict_mode=False``
    drops the name and logs a warning.
    """

    def __init__(self, registry: FilterRegistry, *, strict_mode: bool):
        """
        Initialize QueryCompiler.

        Args:
            registry: Registry to look filter names up in
            strict_mode: If True, raise errors for unknown filter names
        """
        self.registry = registry
        self.strict_mode = strict_mode

    def resolve(self, filter_set: Union[FilterSet, Mapping]) -> FilterSet:
        """
        Restrict a filter set to the registered filters.

        Names are checked before blank values are dropped, so in strict mode
        ``{"with_contry_id": ""}`` is still an unknown filter.

        Args:
            filter_set: Filter name -> raw value

        Returns:
            FilterSet: The filters that will be applied

        Raises:
            UnknownFilterError: If strict_mode is True and a name is not registered
        """
        unknown = [name for name in filter_set if name not in self.registry]
        if unknown and self.strict_mode:
            raise UnknownFilterError(unknown[0], self.registry.names)
        for name in unknown:
            logger.warning("Ignoring unknown filter %r", name)

        if not isinstance(filter_set, FilterSet):
            filter_set = FilterSet(filter_set)
        return filter_set.without(*unknown) if unknown else filter_set

    def predicates(self, filter_set: Union[FilterSet, Mapping]) -> List[ColumnElement[bool]]:
        """
        Build the predicates for every applicable filter in the set.

        Args:
            filter_set: Filter name -> raw value

        Returns:
            List[ColumnElement[bool]]: Predicates in FilterSet order

        Raises:
            UnknownFilterError: If strict_mode is True and a name is not registered
            ValidationError: If a value is malformed for its filter
        """
        conditions = []
        for name, raw in self.resolve(filter_set).items():
            condition = self.registry.build(name, raw)
            if condition is not None:
                conditions.append(condition)
        return conditions

    def compile(self, query: Select, filter_set: Union[FilterSet, Mapping, None]) -> Select:
        """
        Apply a FilterSet to a query.

        Args:
            query: Base SQLAlchemy Select query
            filter_set: Filter name -> raw value; None or empty means no filtering

        Returns:
            Select: Query with filters applied

        Raises:
            UnknownFilterError: If strict_mode is True and a name is not registered
            ValidationError: If a value is malformed for its filter
        """
        if not filter_set:
            return query

        conditions = self.predicates(filter_set)
        if not conditions:
            return query

        logger.debug("Applying %d filter predicate(s) from %s", len(conditions), list(filter_set))
        return query.where(*conditions)


def compile_query(
    query: Select,
    filter_set: Union[FilterSet, Mapping, None],
    registry: FilterRegistry,
    *,
    strict_mode: bool,
) -> Select:
    """
    One-shot form of QueryCompiler(registry, strict_mode=...).compile(query, filter_set).

    Example:
        query = compile_query(select(Student), {"with_country_id": "3"}, registry,
                              strict_mode=True)
    """
    return QueryCompiler(registry, strict_mode=strict_mode).compile(query, filter_set)
