"""
Bearer token verification against the shared users table.

The account service signs access tokens with the same secret; this service
never issues tokens of its own.
"""

import logging
from datetime import datetime, timezone

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.repository import UserRepository
from app.auth.schemas import TokenPayload
from app.config import get_settings
from app.core.exceptions import InvalidTokenError, UserNotFoundError

logger = logging.getLogger(__name__)
settings = get_settings()

ACCESS_TOKEN_TYPE = "access"


class AuthService:
    def __init__(self, db: AsyncSession):
        self.users = UserRepository(db)

    def verify_token(self, token: str) -> TokenPayload:
        """
        Decode an access token issued by the account service.

        Refresh tokens and tokens missing `sub` or `exp` are rejected the
        same way as a bad signature.
        """
        try:
            claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
            subject, expires = claims["sub"], claims["exp"]
        except (JWTError, KeyError) as e:
            logger.warning(f"[Auth] Rejected bearer token: {e}")
            raise InvalidTokenError("Invalid or expired token")

        if claims.get("type") != ACCESS_TOKEN_TYPE:
            logger.warning(f"[Auth] Rejected {claims.get('type')!r} token for user: {subject}")
            raise InvalidTokenError("Access token required")

        return TokenPayload(
            sub=subject,
            exp=datetime.fromtimestamp(expires, tz=timezone.utc),
            type=ACCESS_TOKEN_TYPE,
        )

    async def load_user(self, user_id: str) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user


def get_auth_service(db: AsyncSession) -> AuthService:
    return AuthService(db)
