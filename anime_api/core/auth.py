from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from anime_api.core.config import UserAccount
from anime_api.core.errors import ForbiddenError
from anime_api.core.passwords import PasswordEncoder
from anime_api.domain.entities import AuthenticatedUser

logger = logging.getLogger(__name__)

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
# any signed-in user, whatever roles they hold
AUTHENTICATED = "AUTHENTICATED"


@lru_cache(maxsize=64)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate an ant-style path pattern into a regex.

    ``*`` matches within one path segment, ``**`` matches any number of
    segments including none, so ``/anime/**`` covers ``/anime`` as well.
    """
    parts: list[str] = []
    segments = [s for s in pattern.strip("/").split("/") if s]
    for segment in segments:
        if segment == "**":
            parts.append("(?:/[^/]+)*")
        else:
            parts.append("/" + "[^/]*".join(re.escape(chunk) for chunk in segment.split("*")))
    return re.compile("^" + ("".join(parts) or "/") + "/?$")


@dataclass(frozen=True)
class AccessRule:
    method: str
    pattern: str
    role: str

    def matches(self, method: str, path: str) -> bool:
        if self.method != "*" and self.method.upper() != method.upper():
            return False
        return _compile_pattern(self.pattern).match(path) is not None


DEFAULT_ACCESS_RULES: tuple[AccessRule, ...] = (
    AccessRule("GET", "/anime/**", ROLE_USER),
    AccessRule("POST", "/anime/**", ROLE_ADMIN),
    AccessRule("PUT", "/anime/**", AUTHENTICATED),
    AccessRule("DELETE", "/anime/**", AUTHENTICATED),
)


class AccessPolicy:
    """Ordered (method, path) -> role table; first match wins, no match denies."""

    def __init__(self, rules: Sequence[AccessRule] = DEFAULT_ACCESS_RULES) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[AccessRule, ...]:
        return self._rules

    def required_role(self, method: str, path: str) -> str | None:
        for rule in self._rules:
            if rule.matches(method, path):
                return rule.role
        return None

    def check(self, user: AuthenticatedUser, *, method: str, path: str) -> None:
        role = self.required_role(method, path)
        if role is None:
            logger.info("access_denied", extra={"reason": "no_rule", "http_method": method, "http_path": path})
            raise ForbiddenError("Access Denied")
        if role != AUTHENTICATED and not user.has_role(role):
            logger.info(
                "access_denied",
                extra={"reason": "missing_role", "required_role": role, "http_method": method, "http_path": path},
            )
            raise ForbiddenError("Access Denied")


class UserDirectory:
    """In-memory user store built once from configuration."""

    def __init__(self, accounts: Iterable[UserAccount], *, encoder: PasswordEncoder | None = None) -> None:
        self._encoder = encoder or PasswordEncoder()
        self._accounts: dict[str, UserAccount] = {a.username: a for a in accounts}
        # verified against for unknown usernames so both paths cost one hash check
        self._decoy_hash = self._encoder.encode("decoy-password")

        for account in self._accounts.values():
            if self._encoder.needs_upgrade(account.password_hash):
                logger.warning("password_hash_weak", extra={"username": account.username})

    def __contains__(self, username: object) -> bool:
        return username in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def authenticate(self, username: str, password: str) -> AuthenticatedUser | None:
        account = self._accounts.get(username)
        if account is None:
            self._encoder.matches(password, self._decoy_hash)
            return None
        if not self._encoder.matches(password, account.password_hash):
            return None
        return AuthenticatedUser(username=account.username, roles=frozenset(r.upper() for r in account.roles))

    async def authenticate_async(self, username: str, password: str) -> AuthenticatedUser | None:
        return await asyncio.to_thread(self.authenticate, username, password)
