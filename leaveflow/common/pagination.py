"""Page-window parameters, the ``{"data", "meta"}`` envelope and a query helper.

Leave listings and the notification inbox share the same envelope; the inbox
extends ``PaginationMeta`` with its unread badge.
"""


import math
from typing import Any, Generic, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

T = TypeVar("T")


class PaginationParams:
    """One page of a listing. Usable as ``Depends(PaginationParams)``."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="1-based page number"),
        page_size: int = Query(
            default=DEFAULT_PAGE_SIZE,
            ge=1,
            le=MAX_PAGE_SIZE,
            description=f"Rows per page, at most {MAX_PAGE_SIZE}",
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def meta(self, total: int) -> "PaginationMeta":
        pages = math.ceil(total / self.page_size) if total else 0
        return PaginationMeta(
            page=self.page,
            page_size=self.page_size,
            total=total,
            total_pages=pages,
            has_next=self.page < pages,
            has_prev=self.page > 1,
        )


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel, Generic[T]):
    data: Sequence[T]
    meta: PaginationMeta


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
) -> tuple[Sequence[Any], PaginationMeta]:
    """Run *query* for one page; returns the ORM rows and the page meta.

    The total is counted over the same filters with ordering dropped.
    """
    total: int = (
        await session.execute(query.with_only_columns(func.count()).order_by(None))
    ).scalar_one()
    window = query.offset(params.offset).limit(params.page_size)
    rows = (await session.execute(window)).scalars().all()
    return rows, params.meta(total)
