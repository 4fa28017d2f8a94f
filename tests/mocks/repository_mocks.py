"""
In-memory stand-ins for the anime repository port.

The fake keeps rows in insertion order, hands out ids the way the store does
and honours ``transaction()`` by restoring a snapshot when the block fails.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager

from anime_api.domain.entities import Anime


class InMemoryAnimeRepository:
    def __init__(self, animes: Iterable[Anime] = ()) -> None:
        self.rows: dict[int, Anime] = {}
        self.saved: list[Anime] = []
        self.saved_batches: list[list[Anime]] = []
        self.deleted: list[Anime] = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1
        for anime in animes:
            self._store(anime)

    def _store(self, anime: Anime) -> Anime:
        anime_id = anime.id
        if anime_id is None:
            anime_id = self._next_id
        self._next_id = max(self._next_id, anime_id + 1)
        stored = Anime(id=anime_id, name=anime.name)
        self.rows[anime_id] = stored
        return stored

    async def find_all(self) -> AsyncIterator[Anime]:
        for anime in list(self.rows.values()):
            yield anime

    async def find_by_id(self, anime_id: int) -> Anime | None:
        return self.rows.get(anime_id)

    async def save(self, anime: Anime) -> Anime:
        self.saved.append(anime)
        return self._store(anime)

    async def save_all(self, animes: Sequence[Anime]) -> list[Anime]:
        self.saved_batches.append(list(animes))
        return [self._store(anime) for anime in animes]

    async def delete(self, anime: Anime) -> None:
        self.deleted.append(anime)
        self.rows.pop(anime.id, None)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        snapshot = (dict(self.rows), self._next_id)
        try:
            yield
        except BaseException:
            self.rows, self._next_id = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1


class FailingAnimeRepository(InMemoryAnimeRepository):
    """Every read blows up like a lost database connection would."""

    async def find_by_id(self, anime_id: int) -> Anime | None:
        raise ConnectionError("database is unreachable")


def create_seeded_repository() -> InMemoryAnimeRepository:
    """
    Creates a repository holding a single record, ``Anime(1, "Hellsing")``.

    Returns:
        InMemoryAnimeRepository: Seeded fake repository
    """
    return InMemoryAnimeRepository([Anime(id=1, name="Hellsing")])
