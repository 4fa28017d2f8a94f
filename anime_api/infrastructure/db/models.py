from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from anime_api.domain.entities import NAME_MAX_LENGTH, Anime


class Base(DeclarativeBase):
    pass


class AnimeRow(Base):
    __tablename__ = "anime"

    id: Mapped[int] = mapped_column(Integer(), primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)

    def to_entity(self) -> Anime:
        return Anime(id=self.id, name=self.name)
