"""
Offset pagination shared by every list endpoint.
"""
from typing import Any
from sqlalchemy import Select, select, func
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int,
    limit: int
) -> tuple[list[Any], int]:
    """Run `query` for one page and return (rows, total matching rows)."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(query.offset(offset).limit(limit))
    return list(result.scalars().all()), total
