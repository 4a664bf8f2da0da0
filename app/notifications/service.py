"""
Notification service - device token registration, notification
preferences, and ad-hoc test pushes.
"""

import asyncio
import logging
import random
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.repository import UserRepository
from app.config import Settings, get_settings
from app.content.repository import ContentRepository
from app.core.exceptions import NotFoundError, UpstreamDeliveryError, ValidationError
from app.notifications.composer import MessageComposer, MessageKind
from app.notifications.push import PushProvider
from app.notifications.repository import (
    DeviceTokenRepository,
    NotificationPreferenceRepository,
)
from app.notifications.schemas import (
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    PromotedBook,
    PushTokenRegister,
    PushTokenResponse,
    TestPushResponse,
)
from app.notifications.selector import ContentSelector
from app.notifications.token_cache import TokenCache

logger = logging.getLogger(__name__)

INTERVAL_FIELDS = ("random_books_interval_minutes", "progress_reminder_interval_days")


class NotificationService:
    """
    High-level notification operations: token registry, preference
    store, and single-device test sends.
    """

    def __init__(
        self,
        db: AsyncSession,
        token_cache: TokenCache,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.token_cache = token_cache
        self.settings = settings or get_settings()
        self.token_repo = DeviceTokenRepository(db)
        self.prefs_repo = NotificationPreferenceRepository(db)
        self.user_repo = UserRepository(db)

    # ── Token registry ────────────────────────────────────────────────

    async def register_token(
        self, user_id: str, data: PushTokenRegister
    ) -> PushTokenResponse:
        """
        Register or update a device push token.

        Raises:
            ValidationError: If the token is missing or blank
        """
        token = (data.token or "").strip()
        if not token:
            raise ValidationError("FCM token is required")

        row = await self.token_repo.upsert(
            user_id, token, platform=data.platform, enabled=data.enabled
        )
        if data.enabled:
            self.token_cache.set(user_id, token)
        else:
            self.token_cache.discard(user_id, token)
        # Make sure a preference row exists for the user
        await self.prefs_repo.get_or_create(user_id)

        logger.info(f"[NotificationService] Token registered for user {user_id}")
        return PushTokenResponse.model_validate(row)

    async def set_enabled(self, user_id: str, token: str, enabled: bool) -> PushTokenResponse:
        """Enable or disable one device token (same upsert path as registration)."""
        token = (token or "").strip()
        if not token:
            raise ValidationError("FCM token is required")

        row = await self.token_repo.upsert(user_id, token, enabled=enabled)
        if enabled:
            self.token_cache.set(user_id, token)
        else:
            self.token_cache.discard(user_id, token)
        return PushTokenResponse.model_validate(row)

    async def latest_token(self, user_id: str) -> Optional[str]:
        """Last registered token: cache first, store on a miss."""
        cached = self.token_cache.get(user_id)
        if cached:
            return cached

        row = await self.token_repo.get_latest_enabled(user_id)
        if row is None:
            return None
        self.token_cache.set(user_id, row.token)
        return row.token

    # ── Preference store ──────────────────────────────────────────────

    async def get_preferences(self, user_id: str) -> NotificationPreferencesResponse:
        """Stored preferences, or the all-disabled defaults when none exist."""
        prefs = await self.prefs_repo.get_by_user_id(user_id)
        if prefs is None:
            return NotificationPreferencesResponse.defaults()
        return NotificationPreferencesResponse.model_validate(prefs)

    async def set_preferences(
        self, user_id: str, data: NotificationPreferencesUpdate
    ) -> NotificationPreferencesResponse:
        """
        Upsert-merge the supplied preference fields.

        Raises:
            ValidationError: If an interval is not a positive integer
        """
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        for name in INTERVAL_FIELDS:
            if name in values and values[name] <= 0:
                raise ValidationError(f"{name} must be a positive integer")

        prefs = await self.prefs_repo.upsert(user_id, values)
        return NotificationPreferencesResponse.model_validate(prefs)

    async def set_random_books(
        self,
        user_id: str,
        enabled: bool,
        interval_minutes: Optional[int] = None,
        platform: Optional[str] = None,
    ) -> NotificationPreferencesResponse:
        """Opt in or out of the random book broadcast."""
        update = NotificationPreferencesUpdate(
            random_books_enabled=enabled,
            random_books_interval_minutes=interval_minutes,
            platform=platform,
        )
        prefs = await self.set_preferences(user_id, update)
        logger.info(
            f"[NotificationService] Random book notifications "
            f"{'enabled' if enabled else 'disabled'} for user {user_id}"
        )
        return prefs

    # ── Test send ─────────────────────────────────────────────────────

    async def send_test_push(
        self,
        user_id: str,
        provider: PushProvider,
        rng: Optional[random.Random] = None,
    ) -> TestPushResponse:
        """
        Send one promotional push to the caller's last registered device.

        Raises:
            ValidationError: If the user has no token on file
            NotFoundError: If no book is available
            UpstreamDeliveryError: If the provider rejects or times out
        """
        token = await self.latest_token(user_id)
        if not token:
            raise ValidationError("FCM token not found for user")

        selector = ContentSelector(
            ContentRepository(self.db),
            promotable_sample_size=1,
            fallback_sample_size=1,
            min_rating=self.settings.promotable_min_rating,
            rng=rng,
        )
        content = await selector.select_content()
        if content is None:
            raise NotFoundError("No books available for test notification")

        language = await self.user_repo.get_language(user_id)
        message = MessageComposer().compose(language, content, kind=MessageKind.TEST)

        try:
            await asyncio.wait_for(
                provider.deliver(token, message),
                timeout=self.settings.push_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise UpstreamDeliveryError("Push provider timed out")

        logger.info(f"[NotificationService] Test notification sent to user {user_id}")
        return TestPushResponse(
            message="Test notification sent successfully",
            book=PromotedBook(**content.summary()),
        )


def get_notification_service(
    db: AsyncSession, token_cache: TokenCache
) -> NotificationService:
    """Factory function for NotificationService."""
    return NotificationService(db, token_cache)
