"""
Content repository - random samples of books for promotion.
"""

import logging
from typing import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.content.models import Book

logger = logging.getLogger(__name__)


class ContentRepository:
    """Read-only sampling queries over the books table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sample_promotable(self, limit: int, min_rating: float) -> Sequence[Book]:
        """Random sample of featured, new-release or highly rated books."""
        stmt = (
            select(Book)
            .where(
                or_(
                    Book.is_featured == True,  # noqa: E712
                    Book.is_new_release == True,  # noqa: E712
                    Book.rating >= min_rating,
                )
            )
            .order_by(func.random())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def sample_any(self, limit: int) -> Sequence[Book]:
        """Random sample of any books."""
        stmt = select(Book).order_by(func.random()).limit(limit)
        result = await self.db.execute(stmt)
        return result.scalars().all()
