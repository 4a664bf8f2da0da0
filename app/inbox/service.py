"""
Inbox service - Business logic for admin messages and the per-user inbox.
"""

import logging
import math
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.repository import UserRepository
from app.config import Settings, get_settings
from app.core.exceptions import NotFoundError, UnknownRecipientsError, ValidationError
from app.inbox.repository import InboxRepository
from app.inbox.schemas import InboxMessageRead, InboxPage, Pagination

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class InboxService:
    """
    Service for inbox operations.
    Handles targeted sends, broadcasts and the recipient-side inbox.
    """

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = InboxRepository(db)
        self.user_repo = UserRepository(db)

    # ═══════════════════════════════════════════════════════════════════════
    # SENDING
    # ═══════════════════════════════════════════════════════════════════════

    async def send_to_users(
        self,
        user_ids: List[str],
        title: str,
        body: str,
        action_url: Optional[str] = None,
        sender_id: Optional[str] = None,
    ) -> int:
        """
        Send a message to specific users.

        Every id must exist; if any does not, nothing is written.

        Args:
            user_ids: Recipient user IDs (duplicates are collapsed)
            title: Message title
            body: Message body
            action_url: Optional deep link
            sender_id: Admin who sent the message

        Returns:
            Number of messages created

        Raises:
            ValidationError: If no recipients are given
            UnknownRecipientsError: If some ids do not exist
        """
        recipients = list(dict.fromkeys(uid.strip() for uid in user_ids if uid and uid.strip()))
        if not recipients:
            raise ValidationError("At least one user ID is required")

        existing = await self.user_repo.get_existing_ids(recipients)
        unknown = [uid for uid in recipients if uid not in existing]
        if unknown:
            logger.warning(f"[InboxService] Rejected send, unknown users: {unknown}")
            raise UnknownRecipientsError(unknown)

        count = await self.repository.create_many(
            recipients, title, body, action_url=action_url, sender_id=sender_id
        )
        logger.info(f"[InboxService] Message sent to {count} user(s) by {sender_id}")
        return count

    async def broadcast_to_all(
        self,
        title: str,
        body: str,
        action_url: Optional[str] = None,
        sender_id: Optional[str] = None,
    ) -> int:
        """
        Send a message to every user, committing one batch at a time.

        A failure in a later batch leaves earlier batches committed.

        Raises:
            NotFoundError: If there are no users
        """
        user_ids = await self.user_repo.get_all_ids()
        if not user_ids:
            raise NotFoundError("No users found")

        batch_size = max(1, self.settings.inbox_batch_size)
        total = 0
        for start in range(0, len(user_ids), batch_size):
            batch = user_ids[start:start + batch_size]
            total += await self.repository.create_many(
                batch, title, body, action_url=action_url, sender_id=sender_id
            )
            await self.db.commit()

        logger.info(f"[InboxService] Broadcast message delivered to {total} user(s)")
        return total

    # ═══════════════════════════════════════════════════════════════════════
    # INBOX
    # ═══════════════════════════════════════════════════════════════════════

    async def list(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> InboxPage:
        """
        One page of the user's inbox, newest first.

        `pagination.total` counts the filtered query; `unread_count` is
        always the user's overall unread total.
        """
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)

        messages = await self.repository.list_for_user(
            user_id, offset=(page - 1) * limit, limit=limit, unread_only=unread_only
        )
        total = await self.repository.count(user_id, unread_only=unread_only)
        unread = await self.repository.unread_count(user_id)

        return InboxPage(
            messages=[InboxMessageRead.model_validate(m) for m in messages],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if total else 0,
            ),
            unread_count=unread,
        )

    async def unread_count(self, user_id: str) -> int:
        return await self.repository.unread_count(user_id)

    async def mark_read(self, user_id: str, message_id: str) -> InboxMessageRead:
        """
        Mark one message as read. Calling it again changes nothing.

        Raises:
            NotFoundError: If the message does not exist or is not the user's
        """
        message = await self.repository.get_owned(user_id, message_id)
        if message is None:
            raise NotFoundError("Message not found")

        message = await self.repository.mark_read(message)
        return InboxMessageRead.model_validate(message)

    async def mark_all_read(self, user_id: str) -> int:
        updated = await self.repository.mark_all_read(user_id)
        logger.info(f"[InboxService] Marked {updated} message(s) read for user {user_id}")
        return updated

    async def delete(self, user_id: str, message_id: str) -> None:
        """
        Delete one of the user's messages.

        Raises:
            NotFoundError: If the message does not exist or is not the user's
        """
        if not await self.repository.delete(user_id, message_id):
            raise NotFoundError("Message not found")


def get_inbox_service(db: AsyncSession) -> InboxService:
    """Factory function for InboxService."""
    return InboxService(db)
