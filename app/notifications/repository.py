"""
Notifications repository - Data Access Layer for device tokens,
notification preferences, and broadcast eligibility.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import StoreUnavailableError
from app.database import STORE_ERRORS
from app.notifications.models import (
    DEFAULT_PLATFORM,
    DeviceToken,
    NotificationPreference,
)
from app.notifications.schemas import Recipient

logger = logging.getLogger(__name__)


class DeviceTokenRepository:
    """Repository for device push token operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str, token: str) -> Optional[DeviceToken]:
        """Get the row for a (user, token) pair."""
        stmt = (
            select(DeviceToken)
            .where(DeviceToken.user_id == user_id)
            .where(DeviceToken.token == token)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: str,
        token: str,
        platform: str = DEFAULT_PLATFORM,
        enabled: bool = True,
    ) -> DeviceToken:
        """
        Register a push token. If the (user, token) pair already exists,
        merge `enabled` and bump `updated_at` instead of inserting a duplicate.
        """
        existing = await self.get(user_id, token)
        if existing:
            return await self._merge(existing, enabled)

        row = DeviceToken(
            id=str(uuid4()),
            user_id=user_id,
            token=token,
            platform=platform or DEFAULT_PLATFORM,
            enabled=enabled,
        )
        # uq_device_tokens_user_token rejects a concurrent duplicate insert
        self.db.add(row)
        await self.db.flush()

        logger.info(f"[PushTokenRepo] Registered new token for user: {user_id}")
        return row

    async def _merge(self, existing: DeviceToken, enabled: bool) -> DeviceToken:
        existing.enabled = enabled
        existing.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info(
            f"[PushTokenRepo] Updated token for user: {existing.user_id} (enabled={enabled})"
        )
        return existing

    async def disable_pairs(self, pairs: Iterable[Tuple[str, str]]) -> int:
        """Disable every given (user_id, token) pair. Returns the number of rows changed."""
        changed = 0
        now = datetime.now(timezone.utc)
        for user_id, token in pairs:
            stmt = (
                update(DeviceToken)
                .where(DeviceToken.user_id == user_id)
                .where(DeviceToken.token == token)
                .where(DeviceToken.enabled == True)  # noqa: E712
                .values(enabled=False, updated_at=now)
            )
            result = await self.db.execute(stmt)
            changed += result.rowcount or 0
        await self.db.flush()
        return changed

    async def get_latest_enabled(self, user_id: str) -> Optional[DeviceToken]:
        """Most recently updated enabled token of a user."""
        stmt = (
            select(DeviceToken)
            .where(DeviceToken.user_id == user_id)
            .where(DeviceToken.enabled == True)  # noqa: E712
            .order_by(DeviceToken.updated_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class NotificationPreferenceRepository:
    """Repository for user notification preferences."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_user_id(self, user_id: str) -> Optional[NotificationPreference]:
        """Get notification preferences for a user."""
        stmt = select(NotificationPreference).where(
            NotificationPreference.user_id == user_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: str) -> NotificationPreference:
        """Get existing preferences or create the default row."""
        return await self.upsert(user_id, {})

    async def upsert(self, user_id: str, values: Dict[str, Any]) -> NotificationPreference:
        """
        Insert-or-merge the single preference row of a user.
        Only keys present in `values` are written; other columns keep their
        prior values, or the column defaults on insert.
        """
        prefs = await self.get_by_user_id(user_id)
        if prefs is None:
            prefs = NotificationPreference(id=str(uuid4()), user_id=user_id, **values)
            self.db.add(prefs)
            await self.db.flush()
            await self.db.refresh(prefs)
            logger.info(f"[NotifPrefsRepo] Created preferences for user: {user_id}")
            return prefs

        if not values:
            return prefs

        for key, value in values.items():
            setattr(prefs, key, value)
        prefs.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info(f"[NotifPrefsRepo] Updated preferences for user: {user_id}")
        return prefs


class RecipientRepository:
    """Eligibility queries for the random book broadcast."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_recipients(self) -> List[Recipient]:
        """
        Every (user, enabled token) whose owner opted in to random books.

        Inner join: a user needs both an enabled device token and a
        preference row with random_books_enabled. No ordering guarantee.

        Raises:
            StoreUnavailableError: If the store cannot be queried
        """
        stmt = (
            select(User.id, DeviceToken.token, User.language_preference)
            .join(DeviceToken, DeviceToken.user_id == User.id)
            .join(NotificationPreference, NotificationPreference.user_id == User.id)
            .where(DeviceToken.enabled == True)  # noqa: E712
            .where(NotificationPreference.random_books_enabled == True)  # noqa: E712
        )
        try:
            result = await self.db.execute(stmt)
            rows = result.all()
        except STORE_ERRORS as e:
            raise StoreUnavailableError(f"Could not resolve recipients: {e}") from e

        return [
            Recipient(user_id=user_id, token=token, language=language or "en")
            for user_id, token, language in rows
        ]
