"""
Notifications router - API endpoints for push token registration,
notification preferences, test pushes and manual broadcasts.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import BroadcastSchedulerDep, PushProviderDep, TokenCacheDep
from app.core.exceptions import NotFoundError, UpstreamDeliveryError, ValidationError
from app.database import get_db
from app.dependencies import AdminUser, CurrentActiveUser
from app.notifications.schemas import (
    BroadcastCycleResponse,
    NotificationError,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    PushTokenRegister,
    PushTokenResponse,
    PushTokenUnregister,
    RandomBooksPreferenceRequest,
    TestPushResponse,
)
from app.notifications.service import get_notification_service
from app.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _validation_error(e: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": e.message, "code": "VALIDATION_ERROR"},
    )


# ═══════════════════════════════════════════════════════════════════════════
# PUSH TOKEN MANAGEMENT
# ═══════════════════════════════════════════════════════════════════════════


@router.post(
    "/register-token",
    response_model=PushTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Register or update a push token",
    description="Register the current device's push token. Call this on every app launch.",
    responses={
        200: {"model": PushTokenResponse, "description": "Token registered"},
        400: {"model": NotificationError, "description": "Missing token"},
        401: {"description": "Not authenticated"},
    },
)
@limiter.limit("30/minute")
async def register_push_token(
        request: Request,
        body: PushTokenRegister,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> PushTokenResponse:
    """Register or update a push token for the authenticated user's device."""
    logger.info(f"[NotifRouter] Push token registration for user: {current_user.id}")

    try:
        service = get_notification_service(db, token_cache)
        return await service.register_token(current_user.id, body)

    except ValidationError as e:
        logger.warning(f"[NotifRouter] Rejected token registration: {e.message}")
        return _validation_error(e)


@router.delete(
    "/push-token",
    response_model=PushTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Disable a push token",
    description="Disable a push token on logout. Tokens are kept and only marked disabled.",
    responses={
        200: {"model": PushTokenResponse, "description": "Token disabled"},
        401: {"description": "Not authenticated"},
    },
)
@limiter.limit("30/minute")
async def unregister_push_token(
        request: Request,
        body: PushTokenUnregister,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> PushTokenResponse:
    """Disable a push token for the authenticated user."""
    logger.info(f"[NotifRouter] Push token removal for user: {current_user.id}")

    try:
        service = get_notification_service(db, token_cache)
        return await service.set_enabled(current_user.id, body.token, enabled=False)

    except ValidationError as e:
        return _validation_error(e)


# ═══════════════════════════════════════════════════════════════════════════
# NOTIFICATION PREFERENCES
# ═══════════════════════════════════════════════════════════════════════════


@router.post(
    "/enable-random-books",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Opt in or out of random book notifications",
    responses={
        200: {"model": NotificationPreferencesResponse, "description": "Updated preferences"},
        400: {"model": NotificationError, "description": "Invalid interval"},
        401: {"description": "Not authenticated"},
    },
)
@limiter.limit("20/minute")
async def set_random_books_preference(
        request: Request,
        body: RandomBooksPreferenceRequest,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    """Store the random book broadcast opt-in of the authenticated user."""
    logger.info(
        f"[NotifRouter] Random books preference ({body.enabled}) for user: {current_user.id}"
    )

    try:
        service = get_notification_service(db, token_cache)
        return await service.set_random_books(
            current_user.id,
            enabled=body.enabled,
            interval_minutes=body.interval_minutes,
            platform=body.platform,
        )

    except ValidationError as e:
        return _validation_error(e)


@router.post(
    "/disable-random-books",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Disable random book notifications",
    responses={
        200: {"model": NotificationPreferencesResponse, "description": "Updated preferences"},
        401: {"description": "Not authenticated"},
    },
)
@limiter.limit("20/minute")
async def disable_random_books(
        request: Request,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    """Turn off the random book broadcast for the authenticated user."""
    service = get_notification_service(db, token_cache)
    return await service.set_random_books(current_user.id, enabled=False)


@router.get(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Get notification preferences",
    description="Get the current user's notification preferences (all disabled if never set).",
    responses={
        200: {"model": NotificationPreferencesResponse, "description": "Current preferences"},
        401: {"description": "Not authenticated"},
    },
)
async def get_notification_preferences(
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    """Get notification preferences for the authenticated user."""
    service = get_notification_service(db, token_cache)
    return await service.get_preferences(current_user.id)


@router.put(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Update notification preferences",
    description="Update any subset of the notification preferences.",
    responses={
        200: {"model": NotificationPreferencesResponse, "description": "Updated preferences"},
        400: {"model": NotificationError, "description": "Invalid interval"},
        401: {"description": "Not authenticated"},
    },
)
@limiter.limit("20/minute")
async def update_notification_preferences(
        request: Request,
        body: NotificationPreferencesUpdate,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    """Update notification preferences for the authenticated user."""
    logger.info(f"[NotifRouter] Preferences update for user: {current_user.id}")

    try:
        service = get_notification_service(db, token_cache)
        return await service.set_preferences(current_user.id, body)

    except ValidationError as e:
        return _validation_error(e)


# ═══════════════════════════════════════════════════════════════════════════
# SENDING
# ═══════════════════════════════════════════════════════════════════════════


@router.post(
    "/send-test",
    response_model=TestPushResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a test push",
    description="Send one promotional push with a real book to the caller's last registered device.",
    responses={
        200: {"model": TestPushResponse, "description": "Push sent"},
        400: {"model": NotificationError, "description": "No token on file"},
        404: {"model": NotificationError, "description": "No books available"},
        502: {"model": NotificationError, "description": "Push provider failure"},
    },
)
@limiter.limit("10/minute")
async def send_test_push(
        request: Request,
        current_user: CurrentActiveUser,
        token_cache: TokenCacheDep,
        provider: PushProviderDep,
        db: AsyncSession = Depends(get_db),
) -> TestPushResponse:
    """Send a test notification to the authenticated user."""
    logger.info(f"[NotifRouter] Test push for user: {current_user.id}")

    try:
        service = get_notification_service(db, token_cache)
        return await service.send_test_push(current_user.id, provider)

    except ValidationError as e:
        return _validation_error(e)

    except NotFoundError as e:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": e.message, "code": "NO_CONTENT"},
        )

    except UpstreamDeliveryError as e:
        logger.error(f"[NotifRouter] Test push failed for user {current_user.id}: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Failed to send test notification", "code": "PUSH_FAILED"},
        )


@router.post(
    "/trigger-broadcast",
    response_model=BroadcastCycleResponse,
    status_code=status.HTTP_200_OK,
    summary="Run a random book broadcast now",
    description="Admin only. Runs one broadcast cycle unless one is already in flight.",
    responses={
        200: {"model": BroadcastCycleResponse, "description": "Cycle summary"},
        401: {"description": "Not authenticated"},
        403: {"description": "Admin access required"},
    },
)
async def trigger_broadcast(
        current_user: AdminUser,
        scheduler: BroadcastSchedulerDep,
) -> BroadcastCycleResponse:
    """Manually trigger one random book broadcast cycle."""
    logger.info(f"[NotifRouter] Manual broadcast triggered by admin: {current_user.id}")

    result = await scheduler.tick()
    return BroadcastCycleResponse(
        status=result.status.value,
        recipients=result.recipients,
        attempted=result.attempted,
        failed=result.failed,
        disabled_tokens=result.disabled_tokens,
        book_id=result.book_id,
    )
