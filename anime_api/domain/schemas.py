from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from anime_api.domain.entities import NAME_MAX_LENGTH, Anime


class AnimeIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)

    def to_entity(self, *, anime_id: int | None = None) -> Anime:
        return Anime(id=anime_id, name=self.name)


class AnimeBatchItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)

    def to_entity(self) -> Anime:
        # the column is NOT NULL; an empty name is rejected by the service instead
        return Anime(id=None, name=self.name or "")


class AnimeOut(BaseModel):
    id: int
    name: str

    @classmethod
    def from_entity(cls, anime: Anime) -> "AnimeOut":
        return cls(id=anime.id, name=anime.name)


class ErrorResponse(BaseModel):
    timestamp: str
    path: str
    status: int
    error: str
    message: str
    requestId: str
    developerMessage: str | None = None
