"""Alembic environment for the trip store schema.

Migrations run through the application's async engine, so SQLite foreign
keys and the asyncpg driver behave exactly as they do at runtime.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from travelhelper.app.config import get_settings
from travelhelper.app.db.engine import create_async_engine_from_url, resolve_async_url
from travelhelper.app.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# DATABASE_URL / POSTGRES_URL win over alembic.ini
database_url = resolve_async_url(get_settings())


def run_migrations_offline() -> None:
    """Emit SQL for the configured dialect without connecting."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine_from_url(database_url)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
