"""
Pydantic schemas for the inbox module.
DTOs for admin sends and the per-user inbox listing.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, AnyUrl, BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.inbox.models import MessageType

TITLE_MAX_LENGTH = 255
BODY_MAX_LENGTH = 5000

_URL_ADAPTER = TypeAdapter(AnyUrl)


# ═══════════════════════════════════════════════════════════════════════════
# ADMIN SEND SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════


class BroadcastMessageRequest(BaseModel):
    """DTO for sending a message to every user."""

    title: str = Field(..., max_length=TITLE_MAX_LENGTH, description="Message title")
    body: str = Field(
        ...,
        max_length=BODY_MAX_LENGTH,
        validation_alias=AliasChoices("message", "body"),
        description="Message body",
    )
    action_url: Optional[str] = Field(
        None,
        max_length=500,
        validation_alias=AliasChoices("actionUrl", "action_url"),
    )

    @field_validator("title", "body")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Strip surrounding whitespace; reject empty text."""
        v = v.strip()
        if not v:
            raise ValueError("Title and message cannot be empty")
        return v

    @field_validator("action_url")
    @classmethod
    def validate_action_url(cls, v: Optional[str]) -> Optional[str]:
        """Absolute URLs (web or app scheme) or in-app paths starting with "/"."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if v.startswith("/") and not v.startswith("//"):
            return v
        try:
            url = _URL_ADAPTER.validate_python(v)
        except PydanticValidationError:
            raise ValueError("actionUrl must be a valid URL")
        if not url.host:
            raise ValueError("actionUrl must be a valid URL")
        return v


class SendMessageRequest(BroadcastMessageRequest):
    """DTO for sending a message to specific users."""

    user_ids: List[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("userIds", "user_ids"),
        description="Recipient user IDs",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "userIds": ["5f0c6d3e-7d5b-4c0e-9d0e-7e3c2b1a0f9e"],
                "title": "New audiobooks this week",
                "message": "Check out the latest additions to the library.",
                "actionUrl": "/books/new",
            }
        }
    }


class MessagesCreatedResponse(BaseModel):
    """Result of an admin send."""
    success: bool = True
    message: str
    count: int


# ═══════════════════════════════════════════════════════════════════════════
# INBOX SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════


class InboxMessageRead(BaseModel):
    """DTO for reading one inbox message."""

    id: str
    sender_id: Optional[str] = None
    title: str
    body: str
    type: MessageType
    action_url: Optional[str] = None
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class InboxPage(BaseModel):
    """One page of a user's inbox plus the overall unread count."""
    messages: List[InboxMessageRead]
    pagination: Pagination
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkedReadResponse(BaseModel):
    """Result of a mark-all-read call."""
    success: bool = True
    updated: int


class InboxError(BaseModel):
    """Error response for inbox operations."""
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error code")
