import asyncio
import unittest
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import uuid4

from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import User
from app.config import get_settings
from app.content.models import Book
from app.database import Base
from app.inbox import models as _inbox_models  # noqa: F401
from app.notifications.models import DeviceToken, NotificationPreference
from app.notifications.schemas import PushMessage


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database per test."""

    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.db = self.session_factory()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def add_user(
        self,
        user_id: Optional[str] = None,
        language: str = "en",
        is_admin: bool = False,
    ) -> User:
        user_id = user_id or str(uuid4())
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            language_preference=language,
            is_admin=is_admin,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def add_book(self, **fields) -> Book:
        fields.setdefault("id", str(uuid4()))
        fields.setdefault("title", "Book")
        book = Book(**fields)
        self.db.add(book)
        await self.db.commit()
        return book

    async def add_token(self, user_id: str, token: str, enabled: bool = True) -> DeviceToken:
        row = DeviceToken(id=str(uuid4()), user_id=user_id, token=token, enabled=enabled)
        self.db.add(row)
        await self.db.commit()
        return row

    async def opt_in(self, user_id: str, enabled: bool = True) -> NotificationPreference:
        prefs = NotificationPreference(
            id=str(uuid4()), user_id=user_id, random_books_enabled=enabled
        )
        self.db.add(prefs)
        await self.db.commit()
        return prefs


def access_token_for(user_id: str) -> str:
    settings = get_settings()
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class FakePushProvider:
    """Records deliveries; tokens listed in `failing` raise the given error."""

    def __init__(self, failing: Optional[dict] = None, delay: float = 0.0):
        self.failing = failing or {}
        self.delay = delay
        self.sent: List[tuple] = []

    async def deliver(self, token: str, message: PushMessage) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if token in self.failing:
            raise self.failing[token]
        self.sent.append((token, message))
        return f"ticket-{len(self.sent)}"

    async def aclose(self) -> None:
        pass
