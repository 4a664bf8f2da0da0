import random
from datetime import time

from sqlalchemy import func, select

from app.core.exceptions import NotFoundError, UpstreamDeliveryError, ValidationError
from app.notifications.models import DeviceToken, NotificationPreference
from app.notifications.schemas import NotificationPreferencesUpdate, PushTokenRegister
from app.notifications.service import NotificationService
from app.notifications.token_cache import TokenCache
from tests.helpers import DatabaseTestCase, FakePushProvider


class TokenRegistryTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.cache = TokenCache()
        self.service = NotificationService(self.db, self.cache)
        self.user = await self.add_user()

    async def token_rows(self):
        result = await self.db.execute(
            select(DeviceToken).where(DeviceToken.user_id == self.user.id)
        )
        return list(result.scalars().all())

    async def test_registering_twice_keeps_one_row(self):
        data = PushTokenRegister(token="tok-1")

        await self.service.register_token(self.user.id, data)
        await self.service.register_token(self.user.id, data)

        rows = await self.token_rows()
        self.assertEqual(len(rows), 1)
        self.assertTrue(rows[0].enabled)
        self.assertEqual(self.cache.get(self.user.id), "tok-1")

    async def test_reregistering_merges_enabled_flag(self):
        await self.service.register_token(self.user.id, PushTokenRegister(token="tok-1"))
        await self.service.register_token(
            self.user.id, PushTokenRegister(token="tok-1", enabled=False)
        )

        rows = await self.token_rows()
        self.assertEqual(len(rows), 1)
        self.assertFalse(rows[0].enabled)
        self.assertIsNone(self.cache.get(self.user.id))

    async def test_several_devices_per_user(self):
        await self.service.register_token(self.user.id, PushTokenRegister(token="phone"))
        await self.service.register_token(self.user.id, PushTokenRegister(token="tablet"))

        self.assertEqual(len(await self.token_rows()), 2)

    async def test_legacy_field_name_is_accepted(self):
        data = PushTokenRegister.model_validate({"fcmToken": "tok-legacy"})
        response = await self.service.register_token(self.user.id, data)
        self.assertEqual(response.token, "tok-legacy")

    async def test_blank_token_is_rejected(self):
        with self.assertRaises(ValidationError):
            await self.service.register_token(self.user.id, PushTokenRegister(token="  "))
        self.assertEqual(await self.token_rows(), [])

    async def test_registration_creates_preference_row(self):
        await self.service.register_token(self.user.id, PushTokenRegister(token="tok-1"))

        prefs = await self.service.get_preferences(self.user.id)
        self.assertFalse(prefs.random_books_enabled)
        self.assertTrue(prefs.new_content_enabled)

    async def test_disable_keeps_the_row(self):
        await self.service.register_token(self.user.id, PushTokenRegister(token="tok-1"))

        await self.service.set_enabled(self.user.id, "tok-1", enabled=False)

        rows = await self.token_rows()
        self.assertEqual(len(rows), 1)
        self.assertFalse(rows[0].enabled)
        self.assertIsNone(self.cache.get(self.user.id))

    async def test_latest_token_falls_back_to_store(self):
        await self.service.register_token(self.user.id, PushTokenRegister(token="tok-1"))
        await self.db.commit()
        self.cache.clear()

        self.assertEqual(await self.service.latest_token(self.user.id), "tok-1")
        self.assertEqual(self.cache.get(self.user.id), "tok-1")


class PreferenceStoreTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.service = NotificationService(self.db, TokenCache())
        self.user = await self.add_user()

    async def test_missing_row_reads_as_all_disabled(self):
        prefs = await self.service.get_preferences(self.user.id)

        self.assertFalse(prefs.random_books_enabled)
        self.assertFalse(prefs.daily_reminders_enabled)
        self.assertFalse(prefs.new_content_enabled)
        self.assertFalse(prefs.progress_reminders_enabled)
        count = await self.db.scalar(select(func.count(NotificationPreference.id)))
        self.assertEqual(count, 0)

    async def test_partial_update_keeps_other_fields(self):
        await self.service.set_preferences(
            self.user.id,
            NotificationPreferencesUpdate(
                daily_reminders_enabled=True, daily_reminder_time=time(7, 30)
            ),
        )

        prefs = await self.service.set_random_books(self.user.id, enabled=True, interval_minutes=30)

        self.assertTrue(prefs.random_books_enabled)
        self.assertEqual(prefs.random_books_interval_minutes, 30)
        self.assertTrue(prefs.daily_reminders_enabled)
        self.assertEqual(prefs.daily_reminder_time, time(7, 30))

    async def test_camel_case_fields_are_accepted(self):
        data = NotificationPreferencesUpdate.model_validate(
            {"randomBooksEnabled": True, "interval": 15}
        )
        prefs = await self.service.set_preferences(self.user.id, data)
        self.assertTrue(prefs.random_books_enabled)
        self.assertEqual(prefs.random_books_interval_minutes, 15)

    async def test_non_positive_interval_is_rejected(self):
        with self.assertRaises(ValidationError):
            await self.service.set_random_books(self.user.id, enabled=True, interval_minutes=0)
        self.assertIsNone(await self.db.scalar(select(NotificationPreference)))


class SendTestPushTestCase(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.service = NotificationService(self.db, TokenCache())
        self.user = await self.add_user(language="so")

    async def test_requires_a_registered_token(self):
        with self.assertRaises(ValidationError):
            await self.service.send_test_push(self.user.id, FakePushProvider())

    async def test_requires_a_book(self):
        await self.add_token(self.user.id, "tok-1")
        with self.assertRaises(NotFoundError):
            await self.service.send_test_push(self.user.id, FakePushProvider())

    async def test_sends_localized_message_with_real_book(self):
        await self.add_token(self.user.id, "tok-1")
        book = await self.add_book(title="Safar", title_somali="Safarka", is_featured=True)
        provider = FakePushProvider()

        response = await self.service.send_test_push(
            self.user.id, provider, rng=random.Random(0)
        )

        self.assertTrue(response.success)
        self.assertEqual(response.book.id, book.id)
        self.assertEqual(response.book.author, "Unknown Author")
        token, message = provider.sent[0]
        self.assertEqual(token, "tok-1")
        self.assertEqual(message.title, "📚 Tijaabada Buug!")
        self.assertTrue(message.body.startswith("Safarka"))

    async def test_provider_failure_propagates(self):
        await self.add_token(self.user.id, "tok-1")
        await self.add_book(title="Safar")
        provider = FakePushProvider(failing={"tok-1": UpstreamDeliveryError("rejected")})

        with self.assertRaises(UpstreamDeliveryError):
            await self.service.send_test_push(self.user.id, provider)
