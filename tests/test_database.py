import unittest

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import OWNED_TABLES, create_tables


class CreateTablesTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def test_only_messaging_tables_are_created(self):
        await create_tables(self.engine)

        async with self.engine.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        self.assertEqual(sorted(names), sorted(OWNED_TABLES))
        self.assertNotIn("users", names)
        self.assertNotIn("books", names)

    async def test_is_idempotent(self):
        await create_tables(self.engine)
        await create_tables(self.engine)

        async with self.engine.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        self.assertEqual(len(names), len(OWNED_TABLES))
