"""
SQLAlchemy models for the inbox module.
Defines the InboxMessage table holding in-app messages per recipient.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class MessageType(str, Enum):
    ADMIN_MESSAGE = "admin_message"
    SYSTEM = "system"
    BOOK_UPDATE = "book_update"
    PODCAST_UPDATE = "podcast_update"


class InboxMessage(Base):
    """
    One in-app message addressed to one user.
    Immutable except for the unread -> read transition.
    """

    __tablename__ = "inbox_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Foreign keys
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[MessageType] = mapped_column(
        SQLEnum(
            MessageType,
            name="inbox_message_type",
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        default=MessageType.ADMIN_MESSAGE,
        nullable=False,
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_inbox_messages_user_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return (
            f"<InboxMessage(id={self.id}, user_id={self.user_id}, "
            f"is_read={self.is_read})>"
        )
