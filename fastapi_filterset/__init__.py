"""fastapi-filterset: named filters, sort keys and pagination for FastAPI + SQLModel."""

from . import builders as builders  # noqa: F401
from . import models as models  # noqa: F401
from . import normalizers as normalizers  # noqa: F401
from .compiler import QueryCompiler, compile_query  # noqa: F401
from .config import FilterConfig, FilterPresets  # noqa: F401
from .exceptions import (  # noqa: F401
    FilterError,
    InvalidSortKeyError,
    UnknownFilterError,
    ValidationError,
)
from .manager import FilterDependency, FilterManager, parse_filter_params  # noqa: F401
from .models import (  # noqa: F401
    FilterSet,
    Links,
    Meta,
    PaginatedResponse,
    Pagination,
    PaginationQuery,
    SortingOrder,
)
from .pagination import PaginationEngine  # noqa: F401
from .registry import FilterRegistry, FilterSpec  # noqa: F401
from .search import search_filter  # noqa: F401
from .sorting import SortOption, SortOrder, SortResolver  # noqa: F401

__all__ = [
    # Request integration
    "FilterDependency",
    "FilterManager",
    "parse_filter_params",
    # Core
    "FilterRegistry",
    "FilterSpec",
    "QueryCompiler",
    "compile_query",
    "SortResolver",
    "SortOption",
    "SortOrder",
    "PaginationEngine",
    # Builders
    "search_filter",
    # Configuration
    "FilterConfig",
    "FilterPresets",
    # Errors
    "FilterError",
    "UnknownFilterError",
    "InvalidSortKeyError",
    "ValidationError",
    # Models
    "FilterSet",
    "SortingOrder",
    "PaginationQuery",
    "Pagination",
    "Meta",
    "Links",
    "PaginatedResponse",
    # Modules
    "builders",
    "models",
    "normalizers",
]
