"""
Alembic environment for the messaging tables.

Runs migrations through an async engine built from DATABASE_URL. The users
and books tables are mapped so foreign keys resolve, but belong to the main
Teekoob backend and are never migrated from here.
"""

import asyncio
import importlib.util
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.config import get_settings
from app.database import Base

# users first: every messaging table references it
MODEL_FILES = (
    ("app.auth.models", "auth/models.py"),
    ("app.content.models", "content/models.py"),
    ("app.notifications.models", "notifications/models.py"),
    ("app.inbox.models", "inbox/models.py"),
)

EXTERNAL_TABLES = {"users", "books"}


def load_model_file(module_name: str, relative_path: str):
    """Import a models module by path so package __init__ files (and their routers) stay unloaded."""
    spec = importlib.util.spec_from_file_location(module_name, PROJECT_ROOT / "app" / relative_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


for module_name, relative_path in MODEL_FILES:
    load_model_file(module_name, relative_path)

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(object, name, type_, reflected, compare_to) -> bool:
    return not (type_ == "table" and name in EXTERNAL_TABLES)


def run_migrations_offline() -> None:
    """Emit SQL for the messaging tables without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
