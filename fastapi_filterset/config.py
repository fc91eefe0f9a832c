"""Configuration classes for fastapi-filterset."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi_filterset.models import PaginationQuery


@dataclass
class FilterConfig:
    """
    Configuration for filter compilation and request handling.

    ``strict_mode`` has no default: whether a mistyped filter name is an error
    or is ignored is decided by every configuration explicitly.

    Attributes:
        strict_mode: If True, unknown filter names raise UnknownFilterError;
            if False they are dropped with a warning
        filter_param: Query-string namespace for filters (``filter[name]=value``)
        sort_param: Query-string name of the sort key
        default_filters: Filter params applied when the request does not set them
        max_per_page: Maximum allowed items per page (default: 100)
        default_per_page: Default items per page when not specified (default: 10)
        default_page: Default page number when not specified (default: 1)
        min_per_page: Minimum allowed items per page (default: 1)
        allow_deep_pagination: If True, allow pagination to any page (default: True)
        max_page: Maximum allowed page number, None for unlimited (default: None)

    Example:
        config = FilterConfig(
            strict_mode=True,
            default_filters={"with_enrolled": "true"},
            max_per_page=50,
        )

        students = FilterDependency(registry, sorter, config=config)

        @app.get("/students/")
        def read_students(filters: FilterManager = Depends(students), ...):
            ...
    """

    strict_mode: bool

    # Request parameter names
    filter_param: str = "filter"
    sort_param: str = "sorted_by"

    default_filters: Dict[str, Any] = field(default_factory=dict)

    # Pagination settings
    max_per_page: int = 100
    default_per_page: int = 10
    default_page: int = 1
    min_per_page: int = 1

    # Deep pagination settings
    allow_deep_pagination: bool = True
    max_page: Optional[int] = None

    def __post_init__(self):
        """Validate configuration values."""
        for name in ("filter_param", "sort_param"):
            if not getattr(self, name):
                raise ValueError(f"{name} must be a non-empty string")
        for name in ("max_per_page", "default_per_page", "min_per_page", "default_page"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.min_per_page > self.max_per_page:
            raise ValueError("min_per_page cannot exceed max_per_page")
        if self.default_per_page > self.max_per_page:
            raise ValueError("default_per_page cannot exceed max_per_page")
        if self.max_page is not None and self.max_page < 1:
            raise ValueError("max_page must be >= 1 or None")

    def page_request(self, page: Optional[int], per_page: Optional[int]) -> PaginationQuery:
        """
        Turn the requested page and page size into a bounded PaginationQuery.

        A missing or non-positive page falls back to default_page. A missing
        per_page falls back to default_per_page; it is clamped to
        [min_per_page, max_per_page].

        Args:
            page: Requested page number
            per_page: Requested items per page

        Returns:
            PaginationQuery: Page to fetch

        Raises:
            ValueError: If page is past max_page and deep pagination is disabled
        """
        if not page or page < 1:
            page = self.default_page
        if not self.allow_deep_pagination and self.max_page is not None and page > self.max_page:
            raise ValueError(f"Page {page} exceeds maximum allowed page {self.max_page}")
        per_page = min(max(per_page or self.default_per_page, self.min_per_page), self.max_per_page)
        return PaginationQuery(page=page, per_page=per_page)


class FilterPresets:
    """Pre-defined FilterConfig presets."""

    @staticmethod
    def strict(**overrides: Any) -> FilterConfig:
        """Unknown filter names are request errors."""
        return FilterConfig(strict_mode=True, **overrides)

    @staticmethod
    def lenient(**overrides: Any) -> FilterConfig:
        """Unknown filter names are dropped and logged."""
        return FilterConfig(strict_mode=False, **overrides)

    @staticmethod
    def limited_pagination(
        strict_mode: bool, max_page: int = 100, max_per_page: int = 50
    ) -> FilterConfig:
        """
        Configuration that limits deep pagination.

        Args:
            strict_mode: Unknown filter handling
            max_page: Maximum allowed page number
            max_per_page: Maximum items per page
        """
        return FilterConfig(
            strict_mode=strict_mode,
            max_page=max_page,
            max_per_page=max_per_page,
            default_per_page=min(10, max_per_page),
            allow_deep_pagination=False,
        )
