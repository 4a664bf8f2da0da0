"""
User repository - read access to the users table.
"""

import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User lookups."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """
        Get a user by ID.

        Args:
            user_id: User UUID

        Returns:
            User entity or None
        """
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_existing_ids(self, user_ids: Iterable[str]) -> Set[str]:
        """Return the subset of `user_ids` that exist."""
        ids = list(user_ids)
        if not ids:
            return set()
        stmt = select(User.id).where(User.id.in_(ids))
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def get_all_ids(self) -> List[str]:
        """Return every user id."""
        result = await self.db.execute(select(User.id))
        return list(result.scalars().all())

    async def get_language(self, user_id: str) -> str:
        """Preferred language of a user, "en" when unknown."""
        stmt = select(User.language_preference).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() or "en"
