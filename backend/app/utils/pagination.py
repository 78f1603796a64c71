"""
Pagination helpers for list endpoints.
"""
from typing import List, Any
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


class PaginatedResponse(BaseModel):
    """Standard paginated response"""
    items: List[Any]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 20,
    unique: bool = False
) -> dict:
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        db: Database session
        query: Base SQLAlchemy query
        page: Page number (1-indexed)
        page_size: Items per page, capped at MAX_PAGE_SIZE
        unique: De-duplicate rows (needed for joined eager loads)

    Returns:
        Dictionary with items, total, page, page_size, total_pages, has_next, has_previous
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    if unique:
        result = result.unique()
    items = list(result.scalars().all())

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1
    }
