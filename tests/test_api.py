import httpx
from sqlalchemy import func, select

from app.config import get_settings
from app.core.exceptions import UpstreamDeliveryError
from app.database import get_db
from app.inbox.models import InboxMessage
from app.main import app
from app.notifications.push import ExpoPushProvider
from app.notifications.scheduler import BroadcastScheduler
from app.notifications.token_cache import TokenCache
from tests.helpers import DatabaseTestCase, FakePushProvider, access_token_for

API = "/api/v1"


class ApiTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()

        async def override_get_db():
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        self._saved_state = (
            app.state.token_cache,
            app.state.push_provider,
            app.state.broadcast_scheduler,
        )
        self.provider = FakePushProvider()
        app.state.token_cache = TokenCache()
        app.state.push_provider = self.provider
        app.state.broadcast_scheduler = BroadcastScheduler(
            self.provider,
            get_settings(),
            session_factory=self.session_factory,
            token_cache=app.state.token_cache,
        )
        app.dependency_overrides[get_db] = override_get_db

        self.client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )
        self.user = await self.add_user(language="so")
        self.admin = await self.add_user(is_admin=True)

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        (
            app.state.token_cache,
            app.state.push_provider,
            app.state.broadcast_scheduler,
        ) = self._saved_state
        await super().asyncTearDown()

    def auth(self, user) -> dict:
        return {"Authorization": f"Bearer {access_token_for(user.id)}"}


class NotificationApiTestCase(ApiTestCase):
    async def test_requires_authentication(self):
        response = await self.client.get(f"{API}/notifications/preferences")
        self.assertEqual(response.status_code, 401)

        response = await self.client.get(
            f"{API}/notifications/preferences",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        self.assertEqual(response.status_code, 401)

    async def test_register_token(self):
        response = await self.client.post(
            f"{API}/notifications/register-token",
            json={"fcmToken": "tok-1", "platform": "android"},
            headers=self.auth(self.user),
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"token": "tok-1", "platform": "android", "enabled": True})
        self.assertEqual(app.state.token_cache.get(self.user.id), "tok-1")

    async def test_register_without_token_is_bad_request(self):
        response = await self.client.post(
            f"{API}/notifications/register-token",
            json={"platform": "ios"},
            headers=self.auth(self.user),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

    async def test_unregister_token(self):
        await self.add_token(self.user.id, "tok-1")

        response = await self.client.request(
            "DELETE",
            f"{API}/notifications/push-token",
            json={"token": "tok-1"},
            headers=self.auth(self.user),
        )

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["enabled"])

    async def test_preferences_default_then_update(self):
        headers = self.auth(self.user)

        response = await self.client.get(f"{API}/notifications/preferences", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["random_books_enabled"])
        self.assertFalse(response.json()["new_content_enabled"])

        response = await self.client.post(
            f"{API}/notifications/enable-random-books",
            json={"enabled": True, "intervalMinutes": 5},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["random_books_enabled"])
        self.assertEqual(response.json()["random_books_interval_minutes"], 5)

        response = await self.client.post(
            f"{API}/notifications/disable-random-books", headers=headers
        )
        self.assertFalse(response.json()["random_books_enabled"])
        self.assertEqual(response.json()["random_books_interval_minutes"], 5)

    async def test_invalid_interval_is_bad_request(self):
        response = await self.client.put(
            f"{API}/notifications/preferences",
            json={"random_books_interval_minutes": -1},
            headers=self.auth(self.user),
        )
        self.assertEqual(response.status_code, 400)

    async def test_send_test_without_token(self):
        response = await self.client.post(
            f"{API}/notifications/send-test", headers=self.auth(self.user)
        )
        self.assertEqual(response.status_code, 400)

    async def test_send_test_without_books(self):
        await self.add_token(self.user.id, "tok-1")

        response = await self.client.post(
            f"{API}/notifications/send-test", headers=self.auth(self.user)
        )
        self.assertEqual(response.status_code, 404)

    async def test_send_test(self):
        await self.add_token(self.user.id, "tok-1")
        book = await self.add_book(title="Safar", is_new_release=True)

        response = await self.client.post(
            f"{API}/notifications/send-test", headers=self.auth(self.user)
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["book"]["id"], book.id)
        self.assertEqual(len(self.provider.sent), 1)

    async def test_send_test_provider_failure_is_bad_gateway(self):
        await self.add_token(self.user.id, "tok-1")
        await self.add_book(title="Safar")
        self.provider.failing["tok-1"] = UpstreamDeliveryError("rejected")

        response = await self.client.post(
            f"{API}/notifications/send-test", headers=self.auth(self.user)
        )

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "PUSH_FAILED")

    async def test_send_test_malformed_provider_response_is_bad_gateway(self):
        await self.add_token(self.user.id, "tok-1")
        await self.add_book(title="Safar")
        expo_client = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="not json")
        ))
        app.state.push_provider = ExpoPushProvider(client=expo_client)

        response = await self.client.post(
            f"{API}/notifications/send-test", headers=self.auth(self.user)
        )
        await expo_client.aclose()

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "PUSH_FAILED")

    async def test_trigger_broadcast_is_admin_only(self):
        response = await self.client.post(
            f"{API}/notifications/trigger-broadcast", headers=self.auth(self.user)
        )
        self.assertEqual(response.status_code, 403)

    async def test_trigger_broadcast(self):
        await self.add_token(self.user.id, "tok-1")
        await self.opt_in(self.user.id)
        book = await self.add_book(title="Safar", is_featured=True)

        response = await self.client.post(
            f"{API}/notifications/trigger-broadcast", headers=self.auth(self.admin)
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["book_id"], book.id)
        self.assertEqual(body["attempted"], 1)


class MessagesApiTestCase(ApiTestCase):
    async def message_count(self) -> int:
        async with self.session_factory() as db:
            return await db.scalar(select(func.count(InboxMessage.id)))

    async def test_send_is_admin_only(self):
        response = await self.client.post(
            f"{API}/messages",
            json={"userIds": [self.user.id], "title": "Hi", "message": "Hello"},
            headers=self.auth(self.user),
        )
        self.assertEqual(response.status_code, 403)

    async def test_send_to_users(self):
        response = await self.client.post(
            f"{API}/messages",
            json={
                "userIds": [self.user.id],
                "title": "  Hi  ",
                "message": "Hello",
                "actionUrl": "/books/1",
            },
            headers=self.auth(self.admin),
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["count"], 1)

        inbox = await self.client.get(f"{API}/messages", headers=self.auth(self.user))
        message = inbox.json()["messages"][0]
        self.assertEqual(message["title"], "Hi")
        self.assertEqual(message["action_url"], "/books/1")
        self.assertEqual(message["sender_id"], self.admin.id)
        self.assertEqual(message["type"], "admin_message")

    async def test_send_with_unknown_user_writes_nothing(self):
        response = await self.client.post(
            f"{API}/messages",
            json={"userIds": [self.user.id, "fakeUser"], "title": "Hi", "message": "Hello"},
            headers=self.auth(self.admin),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["user_ids"], ["fakeUser"])
        self.assertEqual(await self.message_count(), 0)

    async def test_blank_title_is_rejected(self):
        response = await self.client.post(
            f"{API}/messages",
            json={"userIds": [self.user.id], "title": "   ", "message": "Hello"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(response.status_code, 422)

    async def test_action_url_must_be_url_or_app_path(self):
        for action_url, expected in (
            ("not a url", 422),
            ("//evil", 422),
            ("https://teekoob.com/books/1", 201),
            ("teekoob://books/1", 201),
            ("/books/1", 201),
        ):
            response = await self.client.post(
                f"{API}/messages",
                json={
                    "userIds": [self.user.id],
                    "title": "Hi",
                    "message": "Hello",
                    "actionUrl": action_url,
                },
                headers=self.auth(self.admin),
            )
            self.assertEqual(response.status_code, expected, action_url)

    async def test_broadcast(self):
        response = await self.client.post(
            f"{API}/messages/broadcast",
            json={"title": "News", "message": "New books"},
            headers=self.auth(self.admin),
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["count"], 2)

    async def test_inbox_lifecycle(self):
        headers = self.auth(self.user)
        for i in range(3):
            await self.client.post(
                f"{API}/messages",
                json={"userIds": [self.user.id], "title": f"T{i}", "message": "Body"},
                headers=self.auth(self.admin),
            )

        response = await self.client.get(f"{API}/messages/unread-count", headers=headers)
        self.assertEqual(response.json(), {"unread_count": 3})

        page = (await self.client.get(
            f"{API}/messages", params={"limit": 2}, headers=headers
        )).json()
        self.assertEqual(len(page["messages"]), 2)
        self.assertEqual(page["pagination"]["total"], 3)
        self.assertEqual(page["pagination"]["total_pages"], 2)
        message_id = page["messages"][0]["id"]

        response = await self.client.put(f"{API}/messages/{message_id}/read", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_read"])

        page = (await self.client.get(
            f"{API}/messages", params={"unreadOnly": "true"}, headers=headers
        )).json()
        self.assertEqual(page["pagination"]["total"], 2)
        self.assertEqual(page["unread_count"], 2)

        response = await self.client.put(f"{API}/messages/read-all", headers=headers)
        self.assertEqual(response.json()["updated"], 2)

        response = await self.client.delete(f"{API}/messages/{message_id}", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(await self.message_count(), 2)

    async def test_other_users_message_is_not_found(self):
        await self.client.post(
            f"{API}/messages",
            json={"userIds": [self.user.id], "title": "Private", "message": "Body"},
            headers=self.auth(self.admin),
        )
        message_id = (await self.client.get(
            f"{API}/messages", headers=self.auth(self.user)
        )).json()["messages"][0]["id"]

        response = await self.client.put(
            f"{API}/messages/{message_id}/read", headers=self.auth(self.admin)
        )
        self.assertEqual(response.status_code, 404)

        response = await self.client.delete(
            f"{API}/messages/{message_id}", headers=self.auth(self.admin)
        )
        self.assertEqual(response.status_code, 404)

    async def test_unread_only_filter(self):
        headers = self.auth(self.user)
        for i in range(5):
            await self.client.post(
                f"{API}/messages",
                json={"userIds": [self.user.id], "title": f"T{i}", "message": "Body"},
                headers=self.auth(self.admin),
            )
        first = (await self.client.get(f"{API}/messages", headers=headers)).json()["messages"][0]
        await self.client.put(f"{API}/messages/{first['id']}/read", headers=headers)

        page = (await self.client.get(
            f"{API}/messages", params={"unreadOnly": "true"}, headers=headers
        )).json()
        self.assertEqual(len(page["messages"]), 4)
        self.assertEqual(page["unread_count"], 4)

        page = (await self.client.get(
            f"{API}/messages", params={"unreadOnly": "true", "limit": 2}, headers=headers
        )).json()
        self.assertEqual(len(page["messages"]), 2)
        self.assertEqual(page["pagination"]["total"], 4)
        self.assertEqual(page["unread_count"], 4)
