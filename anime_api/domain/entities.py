from __future__ import annotations

from dataclasses import dataclass

NAME_MAX_LENGTH = 255


@dataclass(frozen=True)
class Anime:
    id: int | None = None
    name: str | None = None

    @property
    def has_name(self) -> bool:
        return bool(self.name)


@dataclass(frozen=True)
class AuthenticatedUser:
    username: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role.upper() in self.roles
