"""
Pydantic schemas for the notifications module.
DTOs for push token registration, notification preferences and
broadcast results, plus the internal value types passed between the
resolver, composer and dispatcher.
"""

from dataclasses import dataclass, field
from datetime import time
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

from app.notifications.models import (
    DEFAULT_DAILY_REMINDER_TIME,
    DEFAULT_PLATFORM,
    DEFAULT_PROGRESS_REMINDER_INTERVAL_DAYS,
    DEFAULT_RANDOM_BOOKS_INTERVAL_MINUTES,
)


# ═══════════════════════════════════════════════════════════════════════════
# PUSH TOKEN SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════


class PushTokenRegister(BaseModel):
    """
    Register or update the push token of the current device.
    A missing or blank token is rejected by the service with a 400.
    """
    token: Optional[str] = Field(
        None,
        max_length=500,
        validation_alias=AliasChoices("token", "fcmToken", "fcm_token"),
    )
    platform: str = Field(DEFAULT_PLATFORM, max_length=50)
    enabled: bool = True


class PushTokenUnregister(BaseModel):
    """Disable the push token of the current device."""
    token: str = Field(
        ...,
        min_length=1,
        max_length=500,
        validation_alias=AliasChoices("token", "fcmToken", "fcm_token"),
    )


class PushTokenResponse(BaseModel):
    """Response after registering a push token."""
    token: str
    platform: str
    enabled: bool

    model_config = {"from_attributes": True}


# ═══════════════════════════════════════════════════════════════════════════
# NOTIFICATION PREFERENCE SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════


class RandomBooksPreferenceRequest(BaseModel):
    """Opt in or out of the random book broadcast."""
    enabled: bool
    interval_minutes: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("interval_minutes", "intervalMinutes", "interval"),
    )
    platform: Optional[str] = Field(None, max_length=50)


class NotificationPreferencesUpdate(BaseModel):
    """Update notification preferences. All fields optional - only provided fields are updated."""
    random_books_enabled: Optional[bool] = Field(
        None, validation_alias=AliasChoices("random_books_enabled", "randomBooksEnabled")
    )
    random_books_interval_minutes: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "random_books_interval_minutes", "randomBooksIntervalMinutes", "interval"
        ),
    )
    platform: Optional[str] = Field(None, max_length=50)
    daily_reminders_enabled: Optional[bool] = None
    daily_reminder_time: Optional[time] = None
    new_content_enabled: Optional[bool] = None
    progress_reminders_enabled: Optional[bool] = None
    progress_reminder_interval_days: Optional[int] = None


class NotificationPreferencesResponse(BaseModel):
    """Current notification preferences for the user."""
    random_books_enabled: bool
    random_books_interval_minutes: int
    platform: str
    daily_reminders_enabled: bool
    daily_reminder_time: time
    new_content_enabled: bool
    progress_reminders_enabled: bool
    progress_reminder_interval_days: int

    model_config = {"from_attributes": True}

    @classmethod
    def defaults(cls) -> "NotificationPreferencesResponse":
        """Snapshot reported for users without a stored row: everything off."""
        return cls(
            random_books_enabled=False,
            random_books_interval_minutes=DEFAULT_RANDOM_BOOKS_INTERVAL_MINUTES,
            platform=DEFAULT_PLATFORM,
            daily_reminders_enabled=False,
            daily_reminder_time=DEFAULT_DAILY_REMINDER_TIME,
            new_content_enabled=False,
            progress_reminders_enabled=False,
            progress_reminder_interval_days=DEFAULT_PROGRESS_REMINDER_INTERVAL_DAYS,
        )


# ═══════════════════════════════════════════════════════════════════════════
# SEND / BROADCAST SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════


class PromotedBook(BaseModel):
    """Book used in a push notification."""
    id: str
    title: Optional[str] = None
    title_somali: Optional[str] = None
    author: str
    is_featured: bool
    is_new_release: bool
    rating: float


class TestPushResponse(BaseModel):
    """Result of an ad-hoc test push."""
    success: bool = True
    message: str
    book: PromotedBook


class BroadcastCycleResponse(BaseModel):
    """Summary of a manually triggered broadcast cycle."""
    status: str
    recipients: int = 0
    attempted: int = 0
    failed: int = 0
    disabled_tokens: int = 0
    book_id: Optional[str] = None


class NotificationError(BaseModel):
    """Error response for notification operations."""
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")


# ═══════════════════════════════════════════════════════════════════════════
# INTERNAL VALUE TYPES
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Recipient:
    """An eligible device for the current broadcast cycle."""
    user_id: str
    token: str
    language: str = "en"


@dataclass(frozen=True)
class PushMessage:
    """A composed notification: human-readable text plus a string data payload."""
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
