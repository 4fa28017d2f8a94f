from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Sequence
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from anime_api.domain.entities import Anime
from anime_api.domain.ports.anime_repository import AnimeRepository
from anime_api.infrastructure.db.models import AnimeRow

T = TypeVar("T")


class SqlAlchemyAnimeRepository(AnimeRepository):
    def __init__(self, *, session: AsyncSession, timeout_seconds: float) -> None:
        self._session = session
        self._timeout_seconds = float(timeout_seconds)

    async def _bounded(self, aw: Awaitable[T]) -> T:
        return await asyncio.wait_for(aw, timeout=self._timeout_seconds)

    async def find_all(self) -> AsyncIterator[Anime]:
        stmt = select(AnimeRow).order_by(AnimeRow.id)
        rows = await self._bounded(self._session.stream_scalars(stmt))
        async for row in rows:
            yield row.to_entity()

    async def find_by_id(self, anime_id: int) -> Anime | None:
        row = await self._bounded(self._session.get(AnimeRow, anime_id))
        if row is None:
            return None
        return row.to_entity()

    async def save(self, anime: Anime) -> Anime:
        row = await self._persist(anime)
        await self._bounded(self._session.flush())
        return row.to_entity()

    async def save_all(self, animes: Sequence[Anime]) -> list[Anime]:
        rows = [await self._persist(anime) for anime in animes]
        await self._bounded(self._session.flush())
        return [row.to_entity() for row in rows]

    async def delete(self, anime: Anime) -> None:
        stmt = delete(AnimeRow).where(AnimeRow.id == anime.id)
        await self._bounded(self._session.execute(stmt))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
        except BaseException:
            await self._session.rollback()
            raise
        await self._bounded(self._session.commit())

    async def _persist(self, anime: Anime) -> AnimeRow:
        if anime.id is None:
            row = AnimeRow(name=anime.name)
            self._session.add(row)
            return row
        return await self._bounded(self._session.merge(AnimeRow(id=anime.id, name=anime.name)))
