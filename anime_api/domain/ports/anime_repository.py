from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from anime_api.domain.entities import Anime


class AnimeRepository(Protocol):
    def find_all(self) -> AsyncIterator[Anime]:
        ...

    async def find_by_id(self, anime_id: int) -> Anime | None:
        ...

    async def save(self, anime: Anime) -> Anime:
        ...

    async def save_all(self, animes: Sequence[Anime]) -> list[Anime]:
        ...

    async def delete(self, anime: Anime) -> None:
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Unit of work: commits when the block exits cleanly, rolls back otherwise."""
        ...
