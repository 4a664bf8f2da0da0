"""
Caller resolution for FastAPI routes.

Bearer tokens are issued by the Teekoob account service; here they are only
verified and mapped onto a row of the shared users table. Every messaging
route needs a caller, and admin sends additionally need `is_admin`.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.service import get_auth_service
from app.core.exceptions import InvalidTokenError, UserNotFoundError, forbidden, unauthorized
from app.database import get_db

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller(
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
        db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the Authorization header to a user.

    Raises:
        HTTPException: 401 when the header is missing, the token does not
            verify, or the user no longer exists
    """
    if credentials is None:
        raise unauthorized()

    auth_service = get_auth_service(db)
    try:
        claims = auth_service.verify_token(credentials.credentials)
        return await auth_service.load_user(claims.sub)
    except (InvalidTokenError, UserNotFoundError) as e:
        raise unauthorized(detail=e.message)


async def get_active_caller(caller: Annotated[User, Depends(get_caller)]) -> User:
    """Deactivated accounts can neither receive pushes nor read their inbox."""
    if not caller.is_active:
        raise forbidden("User account is deactivated")
    return caller


async def get_admin_caller(caller: Annotated[User, Depends(get_active_caller)]) -> User:
    """Admin-only routes: targeted sends, inbox broadcasts, manual push cycles."""
    if not caller.is_admin:
        logger.warning(f"[Auth] Admin route refused for user: {caller.id}")
        raise forbidden("Admin access required")
    return caller


CurrentActiveUser = Annotated[User, Depends(get_active_caller)]
AdminUser = Annotated[User, Depends(get_admin_caller)]
