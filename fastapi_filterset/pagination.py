"""Page-at-a-time execution of a compiled filter query."""

from math import ceil
from typing import Any, Optional, Tuple

from fastapi import Request
from sqlalchemy import Select, func
from sqlmodel import Session, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fastapi_filterset.models import (
    FilterSet,
    Links,
    Meta,
    PaginatedResponse,
    Pagination,
    PaginationQuery,
)


class PaginationEngine:
    """
    Runs a filtered, sorted query one page at a time.

    The query handed in already carries the WHERE clauses from QueryCompiler
    and the ORDER BY from SortResolver. The count query strips the ordering,
    the page query keeps it. Links are built from the request URL, so
    ``filter[...]`` and sort params survive in every link.
    """

    def __init__(self, pagination: PaginationQuery, request: Request):
        self.pagination = pagination
        self.request = request

    @property
    def offset(self) -> int:
        return (self.pagination.page - 1) * self.pagination.per_page

    def page_query(self, query: Select) -> Select:
        """The rows of the current page, in the query's order."""
        return query.offset(self.offset).limit(self.pagination.per_page)

    @staticmethod
    def count_query(query: Select) -> Select:
        """
        Count the rows the filters match.

        ORDER BY is dropped; it does not affect the count.
        """
        return select(func.count()).select_from(query.order_by(None).subquery())

    def paginate_with_count(self, query: Select, session: Session) -> Tuple[Any, int]:
        """
        Fetch the current page and the total number of matching rows.

        Args:
            query: Query with filters and sort applied
            session: Database session

        Returns:
            Tuple[Any, int]: (page rows, total count)
        """
        total = session.exec(self.count_query(query)).one()
        return session.exec(self.page_query(query)).all(), total

    async def paginate_with_count_async(
        self, query: Select, session: AsyncSession
    ) -> Tuple[Any, int]:
        """Async version of paginate_with_count."""
        total = (await session.exec(self.count_query(query))).one()
        rows = (await session.exec(self.page_query(query))).all()
        return rows, total

    def total_pages(self, total_items: int) -> int:
        """Number of pages; an empty result still has one (empty) page."""
        return max(1, ceil(total_items / self.pagination.per_page))

    def page_url(self, page: int) -> str:
        """The request URL pointing at another page, every other param kept."""
        return str(
            self.request.url.include_query_params(page=page, per_page=self.pagination.per_page)
        )

    def links(self, total_pages: int) -> Links:
        current = self.pagination.page
        return Links(
            self=self.page_url(current),
            first=self.page_url(1),
            last=self.page_url(total_pages),
            next=self.page_url(current + 1) if current < total_pages else None,
            prev=self.page_url(current - 1) if current > 1 else None,
        )

    def build_response(
        self,
        total_items: int,
        data_page: Any,
        filters: Optional[FilterSet] = None,
        sorted_by: Optional[str] = None,
    ) -> PaginatedResponse[Any]:
        """
        Wrap a page of rows with pagination meta, applied filters and links.

        Args:
            total_items: Total number of rows matching the filters
            data_page: Rows of the current page
            filters: Filters that were applied; None or empty leaves meta.filters unset
            sorted_by: Sort key in effect

        Returns:
            PaginatedResponse: Response body
        """
        total_pages = self.total_pages(total_items)
        return PaginatedResponse(
            data=data_page,
            meta=Meta(
                pagination=Pagination(
                    total_items=total_items,
                    per_page=self.pagination.per_page,
                    current_page=self.pagination.page,
                    total_pages=total_pages,
                ),
                filters=filters.to_dict() if filters else None,
                sorted_by=sorted_by,
            ),
            links=self.links(total_pages),
        )
