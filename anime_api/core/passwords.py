from __future__ import annotations

import hmac
import logging
import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^\{([a-z0-9_-]+)\}(.*)$", re.DOTALL)

ARGON2 = "argon2"
NOOP = "noop"


def split_encoded(encoded: str) -> tuple[str, str]:
    """Split ``{id}payload`` into ``(id, payload)``; ``("", encoded)`` when unprefixed."""
    match = _PREFIX_RE.match(encoded or "")
    if match is None:
        return "", encoded or ""
    return match.group(1), match.group(2)


class PasswordEncoder:
    """Delegating password encoder.

    Stored values carry the scheme that produced them as a ``{id}`` prefix so
    the default scheme can change without invalidating existing hashes.
    New hashes always use argon2id. ``{noop}`` is accepted for local
    configuration only.
    """

    def __init__(self, *, hasher: PasswordHasher | None = None) -> None:
        self._hasher = hasher or PasswordHasher()

    def encode(self, raw_password: str) -> str:
        return "{" + ARGON2 + "}" + self._hasher.hash(raw_password)

    def matches(self, raw_password: str, encoded: str) -> bool:
        scheme, payload = split_encoded(encoded)
        if scheme == ARGON2:
            try:
                return self._hasher.verify(payload, raw_password)
            except VerifyMismatchError:
                return False
            except (InvalidHashError, VerificationError):
                logger.warning("password_hash_unreadable", extra={"scheme": scheme})
                return False
        if scheme == NOOP:
            return hmac.compare_digest(payload.encode("utf-8"), raw_password.encode("utf-8"))

        logger.warning("password_scheme_unknown", extra={"scheme": scheme or "-"})
        return False

    def needs_upgrade(self, encoded: str) -> bool:
        scheme, payload = split_encoded(encoded)
        if scheme != ARGON2:
            return True
        try:
            return self._hasher.check_needs_rehash(payload)
        except (InvalidHashError, ValueError):
            return True
