"""fastapi-filterset models"""

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar

from pydantic import BaseModel

from fastapi_filterset.normalizers import is_blank


class SortingOrder(StrEnum):
    """Sorting orders"""

    ASC = "asc"  # ascending order
    DESC = "desc"  # descending order


T = TypeVar("T")


class FilterSet(Mapping):
    """
    Ordered, immutable mapping of filter name to raw value.

    Blank values are dropped on construction, so a FilterSet only ever holds
    filters that should narrow the result. Methods that "change" the set
    return a new FilterSet.

    Example:
        FilterSet({"search_query": "ann* bob", "with_country_id": ["1", "2"], "page": ""})
        # -> FilterSet({'search_query': 'ann* bob', 'with_country_id': ['1', '2']})
    """

    __slots__ = ("_params",)

    def __init__(self, params: Optional[Mapping] = None, /, **kwargs: Any):
        merged: Dict[str, Any] = {}
        for source in (params or {}, kwargs):
            for name, value in source.items():
                if is_blank(value):
                    merged.pop(name, None)
                    continue
                merged[name] = value
        self._params = merged

    def __getitem__(self, name: str) -> Any:
        return self._params[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self) -> str:
        return f"FilterSet({self._params!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FilterSet):
            return self._params == other._params
        return NotImplemented

    __hash__ = None

    def with_value(self, name: str, value: Any) -> "FilterSet":
        """Return a copy with ``name`` set (or removed, if ``value`` is blank)."""
        return FilterSet(self._params, **{name: value})

    def without(self, *names: str) -> "FilterSet":
        """Return a copy without the given filters."""
        return FilterSet({k: v for k, v in self._params.items() if k not in names})

    def merge_defaults(self, defaults: Optional[Mapping]) -> "FilterSet":
        """
        Return a copy where ``defaults`` fill in filters this set does not have.

        Values already present win over defaults. Defaults come first in the
        resulting order.

        Args:
            defaults: Default filter params

        Returns:
            FilterSet: Merged filter set
        """
        if not defaults:
            return self
        merged = dict(defaults)
        merged.update(self._params)
        return FilterSet(merged)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._params)


class PaginationQuery(BaseModel):
    """Pagination query model"""

    page: int
    per_page: int


class Pagination(BaseModel):
    """Pagination model"""

    total_items: Optional[int] = None
    per_page: int
    current_page: int
    total_pages: Optional[int] = None


class Meta(BaseModel):
    """Meta model"""

    pagination: Pagination
    filters: Optional[Dict[str, Any]] = None
    sorted_by: Optional[str] = None


class Links(BaseModel):
    """Links model"""

    self: str
    first: str
    next: Optional[str] = None
    prev: Optional[str] = None
    last: Optional[str] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response model"""

    data: List[T]
    meta: Meta
    links: Links
