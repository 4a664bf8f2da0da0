"""
Inbox router - API endpoints for admin messages and the user inbox.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnknownRecipientsError, ValidationError
from app.database import get_db
from app.dependencies import AdminUser, CurrentActiveUser
from app.inbox.schemas import (
    BroadcastMessageRequest,
    InboxError,
    InboxMessageRead,
    InboxPage,
    MarkedReadResponse,
    MessagesCreatedResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from app.inbox.service import MAX_PAGE_SIZE, get_inbox_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def _not_found(e: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": e.message, "code": "NOT_FOUND"},
    )


# ═══════════════════════════════════════════════════════════════════════════
# ADMIN SENDING
# ═══════════════════════════════════════════════════════════════════════════


@router.post(
    "",
    response_model=MessagesCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to specific users",
    description="Admin only. All recipients must exist or no message is written.",
    responses={
        201: {"model": MessagesCreatedResponse, "description": "Messages created"},
        400: {"model": InboxError, "description": "Unknown or missing recipients"},
        403: {"description": "Admin access required"},
    },
)
async def send_message(
        data: SendMessageRequest,
        current_user: AdminUser,
        db: AsyncSession = Depends(get_db),
) -> MessagesCreatedResponse:
    """Send an inbox message to the given users."""
    logger.info(
        f"[InboxRouter] Send to {len(data.user_ids)} user(s) by admin: {current_user.id}"
    )

    try:
        service = get_inbox_service(db)
        count = await service.send_to_users(
            data.user_ids,
            data.title,
            data.body,
            action_url=data.action_url,
            sender_id=current_user.id,
        )
        return MessagesCreatedResponse(
            message=f"Message sent to {count} user(s)", count=count
        )

    except UnknownRecipientsError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": e.message,
                "code": "UNKNOWN_RECIPIENTS",
                "user_ids": e.user_ids,
            },
        )

    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": e.message, "code": "VALIDATION_ERROR"},
        )


@router.post(
    "/broadcast",
    response_model=MessagesCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to every user",
    description="Admin only. Messages are written in batches.",
    responses={
        201: {"model": MessagesCreatedResponse, "description": "Messages created"},
        403: {"description": "Admin access required"},
        404: {"model": InboxError, "description": "No users"},
    },
)
async def broadcast_message(
        data: BroadcastMessageRequest,
        current_user: AdminUser,
        db: AsyncSession = Depends(get_db),
) -> MessagesCreatedResponse:
    """Send an inbox message to all users."""
    logger.info(f"[InboxRouter] Broadcast by admin: {current_user.id}")

    try:
        service = get_inbox_service(db)
        count = await service.broadcast_to_all(
            data.title,
            data.body,
            action_url=data.action_url,
            sender_id=current_user.id,
        )
        return MessagesCreatedResponse(
            message=f"Message broadcast to {count} user(s)", count=count
        )

    except NotFoundError as e:
        return _not_found(e)


# ═══════════════════════════════════════════════════════════════════════════
# USER INBOX
# ═══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=InboxPage,
    summary="List inbox messages",
    description="Get the current user's messages, newest first.",
)
async def list_messages(
        current_user: CurrentActiveUser,
        db: AsyncSession = Depends(get_db),
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Messages per page"),
        unread_only: bool = Query(False, alias="unreadOnly", description="Only unread messages"),
) -> InboxPage:
    """List messages for the authenticated user."""
    service = get_inbox_service(db)
    return await service.list(current_user.id, page=page, limit=limit, unread_only=unread_only)


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Unread message count",
)
async def get_unread_count(
        current_user: CurrentActiveUser,
        db: AsyncSession = Depends(get_db),
) -> UnreadCountResponse:
    service = get_inbox_service(db)
    return UnreadCountResponse(unread_count=await service.unread_count(current_user.id))


@router.put(
    "/read-all",
    response_model=MarkedReadResponse,
    summary="Mark all messages as read",
)
async def mark_all_read(
        current_user: CurrentActiveUser,
        db: AsyncSession = Depends(get_db),
) -> MarkedReadResponse:
    service = get_inbox_service(db)
    return MarkedReadResponse(updated=await service.mark_all_read(current_user.id))


@router.put(
    "/{message_id}/read",
    response_model=InboxMessageRead,
    summary="Mark a message as read",
    responses={
        200: {"model": InboxMessageRead, "description": "Message marked as read"},
        404: {"model": InboxError, "description": "Message not found"},
    },
)
async def mark_read(
        message_id: str,
        current_user: CurrentActiveUser,
        db: AsyncSession = Depends(get_db),
) -> InboxMessageRead:
    """Mark one message as read. Repeated calls are no-ops."""
    try:
        service = get_inbox_service(db)
        return await service.mark_read(current_user.id, message_id)

    except NotFoundError as e:
        return _not_found(e)


@router.delete(
    "/{message_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete a message",
    responses={
        200: {"description": "Message deleted"},
        404: {"model": InboxError, "description": "Message not found"},
    },
)
async def delete_message(
        message_id: str,
        current_user: CurrentActiveUser,
        db: AsyncSession = Depends(get_db),
):
    """Delete one of the authenticated user's messages."""
    try:
        service = get_inbox_service(db)
        await service.delete(current_user.id, message_id)
        return {"success": True, "message": "Message deleted"}

    except NotFoundError as e:
        return _not_found(e)
