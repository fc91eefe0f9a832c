"""Sort resolver mapping ``<prefix>[_asc|_desc]`` keys to ORDER BY clauses."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select

from fastapi_filterset.exceptions import InvalidSortKeyError
from fastapi_filterset.models import SortingOrder

logger = logging.getLogger(__name__)

_SUFFIXES = {
    "_asc": SortingOrder.ASC,
    "_desc": SortingOrder.DESC,
}


@dataclass(frozen=True, eq=False)
class SortOption:
    """A sortable prefix and the SQL expression it orders by."""

    prefix: str
    column: ColumnElement[Any]
    label: Optional[str] = None


@dataclass(frozen=True, eq=False)
class SortOrder:
    """A resolved sort key."""

    key: str
    prefix: str
    column: ColumnElement[Any]
    direction: SortingOrder
    tiebreaker: Optional[ColumnElement[Any]] = None

    def clauses(self) -> List[Any]:
        """ORDER BY clauses, the tiebreaker last (in the same direction)."""
        clauses = [self._directed(self.column)]
        if self.tiebreaker is not None and self.tiebreaker is not self.column:
            clauses.append(self._directed(self.tiebreaker))
        return clauses

    def _directed(self, column: ColumnElement[Any]) -> Any:
        return column.desc() if self.direction == SortingOrder.DESC else column.asc()


def split_sort_key(sort_key: str) -> Tuple[str, SortingOrder]:
    """
    Split a sort key into prefix and direction.

    Args:
        sort_key: e.g. ``"created_at_desc"``, ``"name_asc"`` or ``"name"``

    Returns:
        Tuple[str, SortingOrder]: Prefix and direction (ASC when no suffix)
    """
    for suffix, direction in _SUFFIXES.items():
        if sort_key.endswith(suffix):
            return sort_key[: -len(suffix)], direction
    return sort_key, SortingOrder.ASC


class SortResolver:
    """
    Resolves sort keys against a fixed set of sortable prefixes.

    Unknown keys are always rejected with InvalidSortKeyError; there is no
    silent fallback to some other order.

    Example:
        sorter = SortResolver(default="created_at_desc", tiebreaker=Student.id)
        sorter.register("created_at", Student.created_at, label="Registration date")
        sorter.register("name", func.lower(Student.last_name), label="Name (a-z)")
        query = sorter.apply(select(Student), "name_desc")
    """

    def __init__(
        self,
        options: Optional[Dict[str, ColumnElement[Any]]] = None,
        *,
        default: Optional[str] = None,
        tiebreaker: Optional[ColumnElement[Any]] = None,
    ):
        """
        Initialize SortResolver.

        Args:
            options: Prefix -> column expression to register up front
            default: Sort key used when the request supplies none
            tiebreaker: Column appended to every ordering for a stable order
                (typically the primary key)
        """
        self._options: Dict[str, SortOption] = {}
        self.default = default
        self.tiebreaker = tiebreaker
        for prefix, column in (options or {}).items():
            self.register(prefix, column)
        if options:
            self.check_default()

    def register(
        self, prefix: str, column: ColumnElement[Any], label: Optional[str] = None
    ) -> SortOption:
        """
        Register a sortable prefix.

        Raises:
            ValueError: If the prefix is empty, already registered, or ends with
                a direction suffix
        """
        if not prefix:
            raise ValueError("Sort prefix must be a non-empty string")
        if prefix in self._options:
            raise ValueError(f"Sort prefix '{prefix}' is already registered")
        if split_sort_key(prefix)[0] != prefix:
            raise ValueError(f"Sort prefix '{prefix}' must not end with _asc or _desc")
        option = SortOption(prefix=prefix, column=column, label=label)
        self._options[prefix] = option
        return option

    @property
    def prefixes(self) -> List[str]:
        return list(self._options)

    def check_default(self) -> None:
        """
        Check that the default sort key names a registered prefix.

        Raises:
            ValueError: If the default key does not resolve
        """
        if self.default is None:
            return
        prefix, _ = split_sort_key(self.default.strip())
        if prefix not in self._options:
            raise ValueError(
                f"Default sort key '{self.default}' does not match a registered prefix. "
                f"Available sort fields: {', '.join(self._options)}"
            )

    def resolve(self, sort_key: Optional[str]) -> Optional[SortOrder]:
        """
        Resolve a sort key.

        Args:
            sort_key: Key to resolve; blank means "use the default"

        Returns:
            Optional[SortOrder]: Resolved order, or None if the key is blank and
                no default is configured

        Raises:
            InvalidSortKeyError: If the prefix is not registered
            ValueError: If the key is blank and the default is misconfigured
        """
        if sort_key is None or not sort_key.strip():
            if self.default is None:
                return None
            self.check_default()
            sort_key = self.default

        sort_key = sort_key.strip()
        prefix, direction = split_sort_key(sort_key)
        option = self._options.get(prefix)
        if option is None:
            raise InvalidSortKeyError(sort_key, self._options)

        return SortOrder(
            key=sort_key,
            prefix=prefix,
            column=option.column,
            direction=direction,
            tiebreaker=self.tiebreaker,
        )

    def apply(self, query: Select, sort_key: Optional[str]) -> Select:
        """
        Apply the ordering for a sort key to a query.

        Args:
            query: Base SQLAlchemy Select query
            sort_key: Key to resolve

        Returns:
            Select: Query with ORDER BY appended (unchanged if nothing to sort by)

        Raises:
            InvalidSortKeyError: If the prefix is not registered
        """
        order = self.resolve(sort_key)
        if order is None:
            return query
        logger.debug("Sorting by %s %s", order.prefix, order.direction)
        return query.order_by(*order.clauses())

    def options(self) -> List[Tuple[str, str]]:
        """
        ``(label, key)`` pairs for a sort select box, ascending then descending per prefix.
        """
        pairs = []
        for option in self._options.values():
            label = option.label or option.prefix.replace("_", " ").capitalize()
            pairs.append((f"{label} (ascending)", f"{option.prefix}_asc"))
            pairs.append((f"{label} (descending)", f"{option.prefix}_desc"))
        return pairs
