"""Pagination utilities."""

from typing import Any, Dict

from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


class PaginationParams(BaseModel):
    """Pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-based)")
    size: int = Field(default=10, ge=1, le=100, description="Page size")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


def total_pages(total: int, size: int) -> int:
    """Ceiling division; an empty result has zero pages."""
    return (total + size - 1) // size


async def paginate(db: AsyncSession, query: Select, pagination: PaginationParams) -> Dict[str, Any]:
    """
    Paginate a SQLAlchemy query.

    Args:
        db: Database session
        query: SQLAlchemy select query, already ordered
        pagination: Pagination parameters

    Returns:
        Dictionary with pagination info and items
    """

    # Count over the unpaginated query so filters are respected
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    pages = total_pages(total, pagination.size)

    result = await db.execute(query.offset(pagination.offset).limit(pagination.size))
    items = result.scalars().all()

    return {
        "items": items,
        "total": total,
        "page": pagination.page,
        "size": pagination.size,
        "has_next": pagination.page < pages,
        "has_prev": pagination.page > 1,
        "total_pages": pages,
    }
