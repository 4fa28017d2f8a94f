from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from anime_api.core.config import get_settings
from anime_api.infrastructure.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _dsn() -> str:
    """``alembic -x dsn=...`` wins over ``POSTGRES_DSN`` from the app settings."""
    override = context.get_x_argument(as_dictionary=True).get("dsn")
    return override or get_settings().postgres_dsn_plain()


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        transaction_per_migration=True,
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    _configure(url=_dsn(), literal_binds=True, dialect_opts={"paramstyle": "named"})


async def run_online() -> None:
    engine = create_async_engine(_dsn(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as conn:
            await conn.run_sync(_run_on_connection)
    finally:
        await engine.dispose()


def _run_on_connection(connection: Connection) -> None:
    _configure(connection=connection)


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())
