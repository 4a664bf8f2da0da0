"""
SQLAlchemy models for the notifications module.
Stores device push tokens and per-user notification preferences.
"""

from datetime import datetime, time, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

DEFAULT_PLATFORM = "mobile"
DEFAULT_RANDOM_BOOKS_INTERVAL_MINUTES = 10
DEFAULT_DAILY_REMINDER_TIME = time(20, 0)
DEFAULT_PROGRESS_REMINDER_INTERVAL_DAYS = 7


class DeviceToken(Base):
    """
    Push token of one user device.
    A user may have several devices; one row per (user_id, token).
    Rows are disabled, never deleted.
    """

    __tablename__ = "device_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_PLATFORM, nullable=False
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
    )

    def __repr__(self) -> str:
        return (
            f"<DeviceToken(user_id={self.user_id}, platform={self.platform}, "
            f"enabled={self.enabled})>"
        )


class NotificationPreference(Base):
    """
    Per-user notification preferences.
    One row per user, written with upsert-merge semantics.
    """

    __tablename__ = "notification_preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    random_books_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    # Stored but not used by the global broadcast timer
    random_books_interval_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_RANDOM_BOOKS_INTERVAL_MINUTES, nullable=False
    )
    platform: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_PLATFORM, nullable=False
    )
    daily_reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    daily_reminder_time: Mapped[time] = mapped_column(
        Time, default=DEFAULT_DAILY_REMINDER_TIME, nullable=False
    )
    new_content_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    progress_reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    progress_reminder_interval_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_PROGRESS_REMINDER_INTERVAL_DAYS, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationPreference(user_id={self.user_id}, "
            f"random_books={self.random_books_enabled}, "
            f"interval={self.random_books_interval_minutes})>"
        )
