"""FastAPI integration: parse filter/sort/page params and produce paginated responses."""

import logging
import re
from typing import Any, Dict, Mapping, Optional, Type

from fastapi import HTTPException, Query, Request, status
from sqlalchemy import Select
from sqlmodel import Session, SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fastapi_filterset.compiler import QueryCompiler
from fastapi_filterset.config import FilterConfig
from fastapi_filterset.exceptions import InvalidSortKeyError
from fastapi_filterset.models import FilterSet, PaginatedResponse, PaginationQuery
from fastapi_filterset.pagination import PaginationEngine
from fastapi_filterset.registry import FilterRegistry
from fastapi_filterset.sorting import SortResolver

logger = logging.getLogger(__name__)


def parse_filter_params(query_params: Any, namespace: str = "filter") -> Dict[str, Any]:
    """
    Collect namespaced filter params from a query string.

    Supports:
        ?filter[search_query]=ann*+bob                   -> "ann* bob"
        ?filter[with_country_id][]=1&filter[with_country_id][]=2  -> ["1", "2"]
        ?filter[with_country_id]=1&filter[with_country_id]=2      -> ["1", "2"]

    Params outside the namespace (page, per_page, sorted_by, ...) are ignored.

    Args:
        query_params: Starlette QueryParams (or any multi-dict with multi_items())
        namespace: Filter namespace

    Returns:
        Dict[str, Any]: Filter name -> str or list of str, in query-string order
    """
    pattern = re.compile(rf"^{re.escape(namespace)}\[([^\[\]]+)\](\[\])?$")
    params: Dict[str, Any] = {}
    for key, value in query_params.multi_items():
        match = pattern.match(key)
        if match is None:
            continue
        name, as_list = match.group(1), match.group(2) is not None
        if name in params:
            existing = params[name]
            params[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            params[name] = [value] if as_list else value
    return params


class FilterManager:
    """
    Per-request filter, sort and pagination state.

    Orchestrates QueryCompiler, SortResolver and PaginationEngine:
    - QueryCompiler: named filters -> WHERE predicates
    - SortResolver: sort key -> ORDER BY
    - PaginationEngine: page execution, counting and response building
    """

    def __init__(
        self,
        request: Request,
        filter_set: FilterSet,
        sorted_by: Optional[str],
        pagination: PaginationQuery,
        compiler: QueryCompiler,
        sorter: Optional[SortResolver] = None,
    ):
        """
        Initialize FilterManager.

        Args:
            request: FastAPI Request object
            filter_set: Filters to apply (defaults already merged in)
            sorted_by: Requested sort key, None for the resolver's default
            pagination: Pagination configuration
            compiler: Compiler bound to the endpoint's filter registry
            sorter: Sort resolver; without one, any sort key is rejected
        """
        self.request = request
        self.filter_set = filter_set
        self.sorted_by = sorted_by
        self.pagination = pagination
        self._compiler = compiler
        self._sorter = sorter
        self.applied_filters: Optional[FilterSet] = None
        self._pagination_engine = PaginationEngine(pagination=pagination, request=request)

    @property
    def strict_mode(self) -> bool:
        """Get strict mode setting."""
        return self._compiler.strict_mode

    @property
    def sort_key(self) -> Optional[str]:
        """The sort key in effect: the requested one or the resolver's default."""
        if self.sorted_by:
            return self.sorted_by
        return self._sorter.default if self._sorter is not None else None

    def apply_filters(self, query: Select) -> Select:
        """
        Apply the request's filters to a query.

        Records the filters that were actually applied in ``applied_filters``;
        in lenient mode unknown names are not among them.

        Raises:
            UnknownFilterError: If strict_mode is True and a filter name is unknown
            ValidationError: If a filter value is malformed
        """
        self.applied_filters = self._compiler.resolve(self.filter_set)
        return self._compiler.compile(query, self.applied_filters)

    def apply_sort(self, query: Select) -> Select:
        """
        Apply the request's sort key to a query.

        Raises:
            InvalidSortKeyError: If the sort key is not recognized
        """
        if self._sorter is None:
            if self.sorted_by:
                raise InvalidSortKeyError(self.sorted_by)
            return query
        return self._sorter.apply(query, self.sorted_by)

    def apply(self, query: Select) -> Select:
        """
        Filter and sort a query without executing it.

        Args:
            query: Base SQLAlchemy Select query

        Returns:
            Select: New query; the input is left untouched
        """
        return self.apply_sort(self.apply_filters(query))

    def generate_response(self, query: Select, session: Session) -> PaginatedResponse[Any]:
        """
        Generate a complete paginated response.

        Args:
            query: Base SQLAlchemy Select query
            session: Database session

        Returns:
            PaginatedResponse: Complete paginated response
        """
        query = self.apply(query)
        data_page, total_items = self._pagination_engine.paginate_with_count(query, session)
        return self._pagination_engine.build_response(
            total_items=total_items,
            data_page=data_page,
            filters=self.applied_filters,
            sorted_by=self.sort_key,
        )

    async def generate_response_async(
        self, query: Select, session: AsyncSession
    ) -> PaginatedResponse[Any]:
        """
        Generate a complete paginated response asynchronously.

        Args:
            query: Base SQLAlchemy Select query
            session: Async database session

        Returns:
            PaginatedResponse: Complete paginated response
        """
        query = self.apply(query)
        data_page, total_items = await self._pagination_engine.paginate_with_count_async(
            query, session
        )
        return self._pagination_engine.build_response(
            total_items=total_items,
            data_page=data_page,
            filters=self.applied_filters,
            sorted_by=self.sort_key,
        )

    def from_model(self, model: Type[SQLModel], session: Session) -> PaginatedResponse[Any]:
        """
        Convenience method to query directly from a model.

        Example:
            @app.get("/students/")
            def read_students(
                session: Session = Depends(get_session),
                filters: FilterManager = Depends(student_filters),
            ):
                return filters.from_model(Student, session)
        """
        return self.generate_response(select(model), session)

    async def from_model_async(
        self, model: Type[SQLModel], session: AsyncSession
    ) -> PaginatedResponse[Any]:
        """Convenience method to query directly from a model (async version)."""
        return await self.generate_response_async(select(model), session)

    def with_filters(self, filters: Optional[Mapping[str, Any]]) -> "FilterManager":
        """
        Set or override filters; blank values remove a filter.

        Returns:
            FilterManager: Self for chaining
        """
        if filters:
            filter_set = self.filter_set
            for name, value in filters.items():
                filter_set = filter_set.with_value(name, value)
            self.filter_set = filter_set
        return self

    def with_sorting(self, sorted_by: Optional[str]) -> "FilterManager":
        """
        Set or override the sort key.

        Returns:
            FilterManager: Self for chaining
        """
        if sorted_by:
            self.sorted_by = sorted_by
        return self


class FilterDependency:
    """
    FastAPI dependency producing a FilterManager for one endpoint.

    The registry, sort resolver and config are fixed when the dependency is
    created; each request gets a fresh FilterManager.

    Example:
        student_filters = FilterDependency(registry, sorter, config=FilterPresets.strict())

        @app.get("/students/", response_model=PaginatedResponse[StudentPublic])
        def read_students(
            *,
            session: Session = Depends(get_session),
            filters: FilterManager = Depends(student_filters),
        ):
            return filters.generate_response(select(Student), session)
    """

    def __init__(
        self,
        registry: FilterRegistry,
        sorter: Optional[SortResolver] = None,
        *,
        config: FilterConfig,
    ):
        """
        Initialize FilterDependency.

        Args:
            registry: Filters available to the endpoint
            sorter: Sort keys available to the endpoint
            config: Configuration (strict_mode, param names, defaults, page bounds)

        Raises:
            ValueError: If the sorter's default key is not one of its sort keys
        """
        if sorter is not None:
            sorter.check_default()
        self.registry = registry
        self.sorter = sorter
        self.config = config
        self.compiler = QueryCompiler(registry, strict_mode=config.strict_mode)

    def _pagination(self, page: Optional[int], per_page: Optional[int]) -> PaginationQuery:
        try:
            return self.config.page_request(page, per_page)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    def __call__(
        self,
        request: Request,
        page: Optional[int] = Query(None, ge=1, description="Page number"),
        per_page: Optional[int] = Query(None, ge=1, description="Items per page"),
    ) -> FilterManager:
        # names are checked on the raw params, before blanks are dropped
        filter_set = self.compiler.resolve(
            parse_filter_params(request.query_params, self.config.filter_param)
        ).merge_defaults(self.config.default_filters)
        sorted_by = request.query_params.get(self.config.sort_param) or None
        logger.debug("Request filters: %r, sorted_by=%r", filter_set, sorted_by)
        return FilterManager(
            request=request,
            filter_set=filter_set,
            sorted_by=sorted_by,
            pagination=self._pagination(page, per_page),
            compiler=self.compiler,
            sorter=self.sorter,
        )
