"""Pagination utilities for SQLAlchemy queries."""

from typing import Any, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int,
    per_page: int,
) -> Tuple[List[Any], int]:
    """Run ``query`` for one page and count the unpaginated total.

    Args:
        db: Session to execute against
        query: Filtered and ordered Select
        page: 1-based page number
        per_page: Page size

    Returns:
        Tuple of (items on this page, total matching rows)
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
    return list(result.scalars().all()), total
