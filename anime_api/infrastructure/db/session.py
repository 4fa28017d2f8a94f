from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from anime_api.core.config import Settings


def build_async_engine(settings: Settings) -> AsyncEngine:
    """Pooled asyncpg engine; connections are tagged with the app name in ``pg_stat_activity``."""
    return create_async_engine(
        settings.postgres_dsn_plain(),
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout_seconds,
        connect_args={
            "command_timeout": settings.db_command_timeout_seconds,
            "server_settings": {"application_name": settings.app_name},
        },
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # commits happen explicitly through the repository's transaction()
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def ping_database(engine: AsyncEngine, *, timeout_seconds: float) -> None:
    """Round-trip ``SELECT 1``; raises on failure or when it exceeds the timeout."""

    async def _select_one() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    await asyncio.wait_for(_select_one(), timeout=timeout_seconds)
