from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence

from anime_api.core.errors import BadRequestError, NotFoundError
from anime_api.domain.entities import Anime
from anime_api.domain.ports.anime_repository import AnimeRepository

logger = logging.getLogger(__name__)

INVALID_NAME_MESSAGE = "Invalid Name"


def not_found_message(anime_id: int) -> str:
    return f"Anime {anime_id} not found."


class AnimeService:
    def __init__(self, *, repository: AnimeRepository) -> None:
        self._repo = repository

    def find_all(self) -> AsyncIterator[Anime]:
        return self._repo.find_all()

    async def find_by_id(self, anime_id: int) -> Anime:
        anime = await self._repo.find_by_id(anime_id)
        if anime is None:
            raise NotFoundError(not_found_message(anime_id))
        return anime

    async def save(self, anime: Anime) -> Anime:
        async with self._repo.transaction():
            saved = await self._repo.save(anime)
        logger.info("anime_created", extra={"anime_id": saved.id})
        return saved

    async def save_all(self, animes: Sequence[Anime]) -> list[Anime]:
        """Persist the batch, then reject it on the first record without a name.

        The check runs against what the store handed back, inside the same
        transaction, so a rejected batch is rolled back as a whole.
        """
        async with self._repo.transaction():
            saved = await self._repo.save_all(list(animes))
            for position, anime in enumerate(saved):
                if not anime.has_name:
                    logger.info("anime_batch_rejected", extra={"position": position, "batch_size": len(saved)})
                    raise BadRequestError(INVALID_NAME_MESSAGE)
        logger.info("anime_batch_created", extra={"batch_size": len(saved)})
        return saved

    async def update(self, anime: Anime) -> None:
        if anime.id is None:
            raise BadRequestError("Anime id is required for update.")
        async with self._repo.transaction():
            await self.find_by_id(anime.id)
            await self._repo.save(anime)
        logger.info("anime_updated", extra={"anime_id": anime.id})

    async def delete(self, anime_id: int) -> None:
        async with self._repo.transaction():
            anime = await self.find_by_id(anime_id)
            await self._repo.delete(anime)
        logger.info("anime_deleted", extra={"anime_id": anime_id})
