"""
Inbox repository - Data Access Layer for in-app messages.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.inbox.models import InboxMessage, MessageType

logger = logging.getLogger(__name__)


class InboxRepository:
    """Repository for InboxMessage CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_many(
        self,
        user_ids: Sequence[str],
        title: str,
        body: str,
        action_url: Optional[str] = None,
        sender_id: Optional[str] = None,
        message_type: MessageType = MessageType.ADMIN_MESSAGE,
    ) -> int:
        """
        Insert one message row per recipient.

        Returns:
            Number of rows added to the session
        """
        now = datetime.now(timezone.utc)
        rows = [
            InboxMessage(
                id=str(uuid4()),
                user_id=user_id,
                sender_id=sender_id,
                title=title,
                body=body,
                type=message_type,
                action_url=action_url,
                is_read=False,
                created_at=now,
            )
            for user_id in user_ids
        ]
        self.db.add_all(rows)
        await self.db.flush()
        return len(rows)

    async def list_for_user(
        self,
        user_id: str,
        offset: int,
        limit: int,
        unread_only: bool = False,
    ) -> List[InboxMessage]:
        """Messages of one user, newest first."""
        stmt = select(InboxMessage).where(InboxMessage.user_id == user_id)
        if unread_only:
            stmt = stmt.where(InboxMessage.is_read.is_(False))
        stmt = (
            stmt.order_by(InboxMessage.created_at.desc(), InboxMessage.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, user_id: str, unread_only: bool = False) -> int:
        stmt = select(func.count(InboxMessage.id)).where(InboxMessage.user_id == user_id)
        if unread_only:
            stmt = stmt.where(InboxMessage.is_read.is_(False))
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def unread_count(self, user_id: str) -> int:
        return await self.count(user_id, unread_only=True)

    async def get_owned(self, user_id: str, message_id: str) -> Optional[InboxMessage]:
        """Get a message only if it belongs to the user."""
        stmt = (
            select(InboxMessage)
            .where(InboxMessage.id == message_id)
            .where(InboxMessage.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_read(self, message: InboxMessage) -> InboxMessage:
        """Flip a message to read. The first read_at is kept."""
        if not message.is_read:
            message.is_read = True
            message.read_at = datetime.now(timezone.utc)
            await self.db.flush()
        return message

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread message of the user as read; returns rows changed."""
        stmt = (
            update(InboxMessage)
            .where(InboxMessage.user_id == user_id)
            .where(InboxMessage.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def delete(self, user_id: str, message_id: str) -> bool:
        """Hard-delete a message owned by the user. Returns False if none matched."""
        stmt = (
            delete(InboxMessage)
            .where(InboxMessage.id == message_id)
            .where(InboxMessage.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info(f"[InboxRepo] Deleted message {message_id} for user {user_id}")
        return deleted
